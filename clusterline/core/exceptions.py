__all__ = [
    "BaseError",
    "ConvergenceError",
    "InternalError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "NotFoundError",
    "OperationCancelledError",
    "PartialFailureError",
    "TransientProviderError",
]


class BaseError(Exception):
    status_code: int


class InvalidArgumentError(BaseError):
    status_code = 400


class InvalidKeyError(InvalidArgumentError):
    status_code = 400


class NotFoundError(BaseError):
    status_code = 404


class OperationCancelledError(BaseError):
    status_code = 499


class ConvergenceError(BaseError):
    status_code = 500


class LabelledError(BaseError):
    label: str | None

    def __init__(self, message: str, label: str | None = None):
        self.label = label
        if label:
            message = f"{label}: {message}"
        super().__init__(message)


class PartialFailureError(LabelledError):
    status_code = 500


class TransientProviderError(LabelledError):
    status_code = 503


class InternalError(Exception):
    status_code = 500
