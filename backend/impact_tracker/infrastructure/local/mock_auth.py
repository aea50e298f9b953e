"""
Mock authentication provider for local development.

The bearer token is taken as the tenant ID, so two tokens never see each
other's donors or credits.
"""

from impact_tracker.core.exceptions import AuthenticationError
from impact_tracker.interfaces.auth_provider import IAuthProvider, User


class MockAuthProvider(IAuthProvider):
    """Resolve bearer tokens to tenants without a real identity service."""

    def __init__(self, enabled: bool = False, dev_user_id: str = "dev_user"):
        """
        Args:
            enabled: Whether a bearer token is required
            dev_user_id: Tenant returned while authentication is off
        """
        self._enabled = enabled
        self._dev_user = User(id=dev_user_id, display_name="Developer")

    async def verify_token(self, token: str) -> User:
        tenant = token.strip()
        if not tenant:
            raise AuthenticationError("Empty bearer token")
        if "@" in tenant:
            return User(id=tenant, email=tenant, display_name=tenant.split("@", 1)[0])
        return User(id=tenant, display_name=tenant)

    def default_user(self) -> User:
        """Tenant used when authentication is disabled."""
        return self._dev_user

    def is_enabled(self) -> bool:
        return self._enabled
