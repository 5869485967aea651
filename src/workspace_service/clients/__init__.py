"""HTTP clients for the upstream authorities the service depends on."""

from .auth import AuthClient, TokenValidation
from .entitlements import EntitlementClient, EntitlementServiceError, SubscriptionDetails
from .permissions import Permission, PermissionClient, ScopeType
from .profiles import UserProfile, UserProfileClient

__all__ = [
    "AuthClient",
    "EntitlementClient",
    "EntitlementServiceError",
    "Permission",
    "PermissionClient",
    "ScopeType",
    "SubscriptionDetails",
    "TokenValidation",
    "UserProfile",
    "UserProfileClient",
]
