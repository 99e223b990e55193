"""Domain errors raised by services and rendered as ``{"error": message}``."""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class SelfRequestError(ValidationError):
    pass


class ConflictError(ValidationError):
    status_code = 409


class AuthError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class UpstreamError(AppError):
    status_code = 502


class ConfigurationError(AppError):
    status_code = 500
