"""Identity representation produced by the auth pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AuthenticatedPrincipal:
    """Caller identity available to downstream handlers.

    ``auth_id`` is the token subject; ``user_id`` is the profile id that
    workspace ownership and membership are recorded against.
    """

    token: str
    user_id: str
    auth_id: str
    email: str | None = None
