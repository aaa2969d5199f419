import uuid
from datetime import timedelta

import pytest
from jose import jwt

from sensafe.config import Settings
from sensafe.errors import AuthError, InternalError
from sensafe.models import User, UserSession, utcnow
from sensafe.services.auth_service import (
    create_access_token, decode_access_token, hash_password, resolve_identity, session_lifetime, verify_password
)


@pytest.fixture
def settings():
    return Settings(jwt_secret="unit-secret", session_ttl_hours=24, patient_session_multiplier=7)


def _user_and_session(lifetime=timedelta(hours=1)):
    user = User(id=uuid.uuid4(), email="a@b.com", role="PARENT", first_name="A", last_name="B", password_hash="x")
    session = UserSession(id=uuid.uuid4(), user_id=user.id, expires_at=utcnow() + lifetime)
    return user, session


def test_hash_and_verify_password():
    hashed = hash_password("secret1")

    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_hash_password_rejects_non_strings():
    with pytest.raises(TypeError):
        hash_password(123456)


def test_session_lifetime(settings):
    assert session_lifetime(settings) == timedelta(hours=24)
    assert session_lifetime(settings, "PARENT") == timedelta(hours=24)
    assert session_lifetime(settings, "PATIENT") == timedelta(days=7)


def test_token_carries_identity_claims(settings):
    user, session = _user_and_session()

    payload = decode_access_token(settings, create_access_token(settings, user, session))

    assert payload["sub"] == str(user.id)
    assert payload["sid"] == str(session.id)
    assert payload["email"] == "a@b.com"
    assert payload["role"] == "PARENT"
    assert payload["expiresAt"].startswith(session.expires_at.isoformat()[:19])


def test_expired_token(settings):
    user, session = _user_and_session(lifetime=timedelta(seconds=-30))
    token = create_access_token(settings, user, session)

    with pytest.raises(AuthError, match="Token expired"):
        decode_access_token(settings, token)


def test_token_without_session_id_is_invalid(settings):
    token = jwt.encode({"sub": str(uuid.uuid4())}, "unit-secret", algorithm="HS256")

    with pytest.raises(AuthError, match="Invalid token"):
        decode_access_token(settings, token)


def test_garbage_token_is_invalid(settings):
    with pytest.raises(AuthError, match="Invalid token"):
        decode_access_token(settings, "not.a.jwt")


def test_missing_secret_is_an_internal_error():
    user, session = _user_and_session()

    with pytest.raises(InternalError):
        create_access_token(Settings(jwt_secret=None), user, session)
    with pytest.raises(InternalError):
        decode_access_token(Settings(jwt_secret=None), "whatever")


async def test_non_string_ids_in_a_signed_token_are_invalid(settings):
    token = jwt.encode({"sub": str(uuid.uuid4()), "sid": 12345}, "unit-secret", algorithm="HS256")

    with pytest.raises(AuthError, match="Invalid token"):
        await resolve_identity(None, settings, token)
