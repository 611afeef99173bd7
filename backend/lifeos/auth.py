"""
Explicit session context for backend calls.

The session (bearer token plus the signed-in user) is passed to the API
client instead of being read from ambient storage, so every collaborator
can be exercised without a browser environment.
"""

import structlog
from pydantic import BaseModel

from lifeos.errors import ApiError
from lifeos.models.billing import CheckoutPrefill


class AuthenticatedUser(BaseModel):
    """Represents the signed-in user."""

    id: str
    email: str | None = None
    name: str | None = None
    phone: str | None = None


class Session(BaseModel):
    """Bearer token and user of the current session."""

    token: str | None = None
    user: AuthenticatedUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def require_token(self) -> str:
        """Bearer token of the session. Raises ApiError (401) when signed out."""
        if not self.token:
            raise ApiError("Authentication required", status_code=401)
        return self.token

    def prefill(self) -> CheckoutPrefill:
        """Identity to prefill in the checkout widget."""
        if self.user is None:
            return CheckoutPrefill()
        return CheckoutPrefill(
            email=self.user.email,
            name=self.user.name,
            phone=self.user.phone,
        )

    def bind_log_context(self) -> None:
        """Bind the user id to structlog context vars for subsequent log lines."""
        if self.user is not None:
            structlog.contextvars.bind_contextvars(user_id=self.user.id)
