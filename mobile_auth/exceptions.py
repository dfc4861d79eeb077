"""Error taxonomy shared by the authentication core and the HTTP layer."""


class ServiceError(Exception):
    """Base for every error rendered as a JSON error body."""

    error_type = "ServiceError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthServiceError(ServiceError):
    """Base exception for request-scoped authentication errors."""

    error_type = "AuthServiceError"
    status_code = 400


class ValidationError(AuthServiceError):
    """Raised when caller input is malformed."""

    error_type = "ValidationError"
    status_code = 400


class NotFoundError(AuthServiceError):
    """Raised when the user or challenge does not exist."""

    error_type = "NotFoundError"
    status_code = 404


class UserNotFoundError(NotFoundError):
    error_type = "UserNotFoundError"
    status_code = 404


class ChallengeNotFoundError(NotFoundError):
    error_type = "ChallengeNotFoundError"
    status_code = 400


class ExpiredError(AuthServiceError):
    """Raised when a challenge or token is past its validity window."""

    error_type = "ExpiredError"
    status_code = 400


class ChallengeExpiredError(ExpiredError):
    error_type = "ChallengeExpiredError"
    status_code = 400


class TokenExpiredError(ExpiredError):
    error_type = "TokenExpiredError"
    status_code = 401


class InvalidCodeError(AuthServiceError):
    """Raised when the submitted code does not match the stored challenge."""

    error_type = "InvalidCodeError"
    status_code = 400


class MalformedTokenError(AuthServiceError):
    """Raised when a token has a bad signature or is not a token at all."""

    error_type = "MalformedTokenError"
    status_code = 401


class UnauthenticatedError(AuthServiceError):
    """Raised when a protected call carries no credential."""

    error_type = "UnauthenticatedError"
    status_code = 401


class ServiceUnavailableError(ServiceError):
    """Infrastructure fault, not an authentication rejection; callers may retry later."""

    error_type = "ServiceUnavailable"
    status_code = 503


class StoreUnavailableError(ServiceUnavailableError):
    error_type = "StoreUnavailable"
    status_code = 503


class TokenConfigurationError(Exception):
    """Raised at startup when the signing configuration is unusable."""
    pass
