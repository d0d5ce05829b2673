import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from canvasnotes.api.deps import get_current_user_id
from canvasnotes.core.auth import AuthConfigError, TokenError, TokenValidator, create_access_token

from conftest import TEST_JWT_SECRET


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_validate_token_returns_claims():
    validator = TokenValidator(secret=TEST_JWT_SECRET, audience="authenticated")
    token = create_access_token("user-1", TEST_JWT_SECRET, email="u1@example.com")

    payload = validator.validate_token(token)

    assert validator.get_user_id(payload) == "user-1"
    assert payload["email"] == "u1@example.com"


def test_expired_token_is_rejected():
    validator = TokenValidator(secret=TEST_JWT_SECRET, audience="authenticated")
    token = create_access_token("user-1", TEST_JWT_SECRET, expires_in=-60)

    with pytest.raises(TokenError, match="expired"):
        validator.validate_token(token)


def test_wrong_secret_or_audience_is_rejected():
    validator = TokenValidator(secret=TEST_JWT_SECRET, audience="authenticated")

    with pytest.raises(TokenError):
        validator.validate_token(create_access_token("user-1", "some-other-secret"))
    with pytest.raises(TokenError):
        validator.validate_token(create_access_token("user-1", TEST_JWT_SECRET, audience="anon"))


def test_unconfigured_validator_raises_config_error():
    validator = TokenValidator(secret="", audience="authenticated")

    with pytest.raises(AuthConfigError):
        validator.validate_token("anything")


@pytest.mark.asyncio
async def test_current_user_id_resolution():
    validator = TokenValidator(secret=TEST_JWT_SECRET, audience="authenticated")

    assert await get_current_user_id(None, validator) is None
    assert await get_current_user_id(bearer("garbage"), validator) is None
    assert await get_current_user_id(bearer(create_access_token("", TEST_JWT_SECRET)), validator) is None
    assert await get_current_user_id(bearer(create_access_token("user-9", TEST_JWT_SECRET)), validator) == "user-9"


@pytest.mark.asyncio
async def test_current_user_id_without_secret_is_server_error():
    validator = TokenValidator(secret="", audience="authenticated")

    with pytest.raises(HTTPException) as exc:
        await get_current_user_id(bearer("token"), validator)

    assert exc.value.status_code == 500
