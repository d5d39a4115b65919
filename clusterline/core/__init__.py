from ._async_helper import gather_all, run_async, run_sync
from ._decorators import sync_operations
from ._log_helper import configure_logging
from ._poller import CancelToken, Poll, PollState, poll_until
from ._provider import Provider
from ._retry import retry, retry_kwargs
from .data_model import DataModel, DataModelField

__all__ = [
    "CancelToken",
    "DataModel",
    "DataModelField",
    "Poll",
    "PollState",
    "Provider",
    "configure_logging",
    "gather_all",
    "poll_until",
    "retry",
    "retry_kwargs",
    "run_async",
    "run_sync",
    "sync_operations",
]
