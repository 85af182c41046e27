import jwt
import pytest

from taru.auth import (
    Authorized,
    Denied,
    authorize,
    create_access_token,
    decode_access_token,
)
from taru.config import Settings
from taru.errors import AuthenticationError
from taru.models.user import CurrentUser, Role

SETTINGS = Settings(jwt_secret="test-secret")


def make_user(role: Role) -> CurrentUser:
    return CurrentUser(user_id="user-1", email="user-1@taru.test", role=role)


def test_authorize_admits_allowed_role():
    user = make_user(Role.student)

    outcome = authorize(user, [Role.student])

    assert outcome == Authorized(user=user)


def test_authorize_denies_other_roles():
    outcome = authorize(make_user(Role.parent), [Role.student, Role.teacher])

    assert isinstance(outcome, Denied)
    assert outcome.reason == "Access denied. student or teacher role required"


def test_token_round_trip_keeps_claims():
    user = make_user(Role.teacher)
    token = create_access_token(user, SETTINGS)

    decoded = decode_access_token(token, SETTINGS)

    assert decoded.user_id == "user-1"
    assert Role(decoded.role) is Role.teacher
    claims = jwt.decode(token, SETTINGS.jwt_secret, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_token_with_missing_claims_is_invalid():
    token = jwt.encode({"email": "x@taru.test"}, SETTINGS.jwt_secret, "HS256")

    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token(token, SETTINGS)
    assert exc_info.value.status_code == 401


def test_garbage_token_is_invalid():
    with pytest.raises(AuthenticationError):
        decode_access_token("not-a-jwt", SETTINGS)
