import pytest
from jose import jwt

from aeroledger.app.security import ALGORITHM, SECRET_KEY, create_access_token, decode_access_token
from tests.conftest import MANUFACTURER


def test_jwt_token_creation():
    """Test JWT token creation and payload."""
    token = create_access_token(subject=MANUFACTURER, role="Manufacturer")
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

    assert payload.get("sub") == MANUFACTURER
    assert payload.get("role") == "Manufacturer"
    assert "exp" in payload


def test_decode_access_token_returns_subject():
    """Test decoding a valid token returns its subject."""
    assert decode_access_token(create_access_token(subject=MANUFACTURER)) == MANUFACTURER


def test_decode_access_token_expired():
    """Test that an expired token is rejected."""
    token = create_access_token(subject=MANUFACTURER, expires_minutes=-1)
    with pytest.raises(PermissionError, match="Invalid authentication credentials"):
        decode_access_token(token)


def test_decode_access_token_wrong_key():
    """Test that a token signed with another key is rejected."""
    token = jwt.encode({"sub": MANUFACTURER}, "another_key", algorithm=ALGORITHM)
    with pytest.raises(PermissionError):
        decode_access_token(token)


def test_decode_access_token_missing_subject():
    """Test that a token without a subject is rejected."""
    token = jwt.encode({"role": "Airline"}, SECRET_KEY, algorithm=ALGORITHM)
    with pytest.raises(PermissionError, match="missing subject"):
        decode_access_token(token)
