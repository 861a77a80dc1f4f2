from __future__ import annotations


class PortalAuthError(Exception):
    """Base error for the login functions.

    `public_message` is what the client sees; `str(exc)` may carry more detail for logs.
    """

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None, *, public_message: str | None = None) -> None:
        if public_message is not None:
            self.public_message = public_message
        super().__init__(message or self.public_message)


class ValidationError(PortalAuthError):
    status_code = 400
    public_message = "Invalid request body"

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message=message)


class AuthError(PortalAuthError):
    status_code = 401
    public_message = "Invalid credentials"


class AccountDisabledError(PortalAuthError):
    status_code = 401
    public_message = "Your account has been deactivated. Please contact an administrator."


class ExpiredCredentialError(PortalAuthError):
    status_code = 401
    public_message = "Temporary password has expired. Please contact an administrator."


class PolicyViolationError(PortalAuthError):
    status_code = 400

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason, public_message=reason)


class CredentialUpdateError(PortalAuthError):
    public_message = "Failed to update password"


class ProfileUpdateError(PortalAuthError):
    public_message = "Failed to complete password reset"


class IdentityProviderError(PortalAuthError):
    """The identity provider could not be reached or answered unexpectedly."""
