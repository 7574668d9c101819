"""Error taxonomy shared by services, routes and the presentation layer.

Every error carries the HTTP status it is surfaced with, so routes can let
them propagate to the exception handler registered in ``huddle.main``.
"""


class HuddleError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(HuddleError):
    """A required field is missing or malformed."""

    status_code = 400


class ConfigurationError(HuddleError):
    """A required credential or resource is not configured."""

    status_code = 500


class UpstreamFailure(HuddleError):
    """The backing store or the completion service rejected a call."""

    status_code = 500


class AIProcessingFailed(UpstreamFailure):
    def __init__(self, detail: str | None = None):
        super().__init__(f"AI processing failed: {detail or 'an error occurred with the completion service.'}")
        self.detail = detail


class NotFound(HuddleError):
    status_code = 404


class InviteNotFound(NotFound):
    def __init__(self, code: str):
        super().__init__("Invite code not found or has expired")
        self.code = code


class UsernameTaken(HuddleError):
    status_code = 409

    def __init__(self, username: str):
        super().__init__("Username is already taken")
        self.username = username


class ProfileCreationFailed(HuddleError):
    status_code = 500

    def __init__(self, detail: str | None = None):
        super().__init__("Failed to create user profile")
        self.detail = detail


class AuthRejected(HuddleError):
    """The auth backend refused to create an identity (e.g. duplicate email)."""

    status_code = 400


class InvalidCredentials(HuddleError):
    status_code = 400


class NotAuthenticated(HuddleError):
    status_code = 401

    def __init__(self, message: str = "No user logged in"):
        super().__init__(message)


class ConstraintViolation(UpstreamFailure):
    """A write hit a storage-level constraint (unique key, foreign key)."""

    status_code = 409
