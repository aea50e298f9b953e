"""
Auth provider interface.

Identity is supplied by an external auth middleware; the ledger only needs an
opaque user ID to scope every operation to one tenant.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """Authenticated caller."""

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


class IAuthProvider(ABC):
    """Interface for token verification."""

    @abstractmethod
    async def verify_token(self, token: str) -> User:
        """Verify a bearer token and return the caller."""
        pass

    @abstractmethod
    def default_user(self) -> User:
        """Caller to assume when authentication is disabled."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        pass
