class AppError(Exception):
    """Base app error."""


class NotAuthenticatedError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InvalidArgumentError(AppError):
    pass


class InvalidReportTypeError(AppError):
    pass


class RemoteOperationError(AppError):
    """The record store call itself failed."""
