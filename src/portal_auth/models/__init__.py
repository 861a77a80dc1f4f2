from portal_auth.models.auth_user import AuthUser
from portal_auth.models.profile import Profile

__all__ = [
    "AuthUser",
    "Profile",
]
