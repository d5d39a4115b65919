from typing import Any

from clusterline.settings import Settings, get_settings


class Provider:
    __type__: str
    settings: Settings

    def __init__(self, settings: Settings | None = None, **kwargs: Any):
        self.__type__ = kwargs.pop("__type__", self.__class__.__module__)
        self.settings = settings or get_settings()
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __setup__(self) -> None:
        pass
