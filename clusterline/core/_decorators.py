import inspect
from functools import wraps
from typing import Any, Callable, TypeVar

from ._async_helper import run_sync

T = TypeVar("T", bound=type)


def sync_operations(cls: T) -> T:
    """Pair every public ``async def aname`` with a blocking ``name``.

    Methods the class already defines under the plain name are kept.
    """
    for attr, func in list(vars(cls).items()):
        if attr.startswith("_") or not attr.startswith("a"):
            continue
        if not inspect.iscoroutinefunction(func):
            continue
        name = attr[1:]
        if name in vars(cls):
            continue
        setattr(cls, name, _blocking(func, name))
    return cls


def _blocking(afunc: Callable[..., Any], name: str) -> Callable[..., Any]:
    @wraps(afunc)
    def wrapper(self, *args, **kwargs) -> Any:
        return run_sync(afunc, self, *args, **kwargs)

    wrapper.__name__ = name
    wrapper.__qualname__ = afunc.__qualname__.rsplit(".", 1)[0] + f".{name}"
    return wrapper
