"""Authentication pipeline and access gates."""

from .guards import AccessGuard
from .pipeline import authenticate_request, extract_bearer_token, read_subject
from .principal import AuthenticatedPrincipal

__all__ = [
    "AccessGuard",
    "AuthenticatedPrincipal",
    "authenticate_request",
    "extract_bearer_token",
    "read_subject",
]
