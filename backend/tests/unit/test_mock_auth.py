import pytest
from fastapi import HTTPException

from impact_tracker.api.deps import get_current_user
from impact_tracker.core.exceptions import AuthenticationError
from impact_tracker.infrastructure.local.mock_auth import MockAuthProvider


@pytest.mark.asyncio
async def test_token_is_the_tenant() -> None:
    provider = MockAuthProvider(enabled=True)

    user = await provider.verify_token("org-42")
    email_user = await provider.verify_token("finance@example.org")

    assert user.id == "org-42"
    assert email_user.id == "finance@example.org"
    assert email_user.email == "finance@example.org"


@pytest.mark.asyncio
async def test_blank_token_is_rejected() -> None:
    with pytest.raises(AuthenticationError):
        await MockAuthProvider(enabled=True).verify_token("   ")


@pytest.mark.asyncio
async def test_disabled_auth_uses_dev_tenant() -> None:
    provider = MockAuthProvider(enabled=False, dev_user_id="local-dev")

    user = await get_current_user(authorization=None, auth_provider=provider)

    assert user.id == "local-dev"


@pytest.mark.asyncio
async def test_malformed_header_is_401() -> None:
    provider = MockAuthProvider(enabled=True)

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(authorization="Token abc", auth_provider=provider)

    assert exc_info.value.status_code == 401
