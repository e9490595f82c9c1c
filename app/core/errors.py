"""
Authentication error taxonomy.

Services raise these instead of HTTPException so they can be used outside a
request. main.py renders every AuthError as {"detail": message} with the
class's status code.
"""

from fastapi import status


class AuthError(Exception):
    """Base class for errors raised by the auth and user services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class InvalidMessage(InvalidInput):
    default_detail = "Invalid SIWE message"


class InvalidAddress(InvalidInput):
    default_detail = "Address is not valid"


class ResourceNotFound(AuthError):
    # 400 rather than 404, see DESIGN.md
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Resource not found"


class UserNotFound(ResourceNotFound):
    default_detail = "User not found"


class AuthenticationFailure(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class NonceMismatch(AuthenticationFailure):
    default_detail = "Invalid nonce"


class SignatureInvalid(AuthenticationFailure):
    default_detail = "SIWE verification failed. Bad signature or nonce"


class RefreshInvalid(AuthenticationFailure):
    default_detail = "Invalid refresh token"


class Unauthorized(AuthenticationFailure):
    default_detail = "Unauthorized"


class Conflict(AuthError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class ServiceUnavailable(AuthError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service unavailable"


class SessionStoreUnavailable(ServiceUnavailable):
    default_detail = "Session store unavailable"
