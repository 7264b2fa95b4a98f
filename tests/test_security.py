import hashlib
from datetime import datetime, timedelta, timezone

from jose import jwt

import config
from security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)


def test_password_hash_is_not_plaintext():
    hashed = get_password_hash("123456")
    assert hashed != "123456"
    assert verify_password("123456", hashed)
    assert not verify_password("654321", hashed)


def test_verify_password_rejects_empty_values():
    assert not verify_password("", get_password_hash("123456"))
    assert not verify_password("123456", "")


def test_access_token_carries_user_id():
    token = create_access_token("5d7a514b5d2c12c7449be045")
    assert decode_access_token(token) == "5d7a514b5d2c12c7449be045"


def test_expired_token_is_rejected():
    token = create_access_token("5d7a514b5d2c12c7449be045", expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode(
        {"sub": "5d7a514b5d2c12c7449be045", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "another-secret",
        algorithm=config.ALGORITHM,
    )
    assert decode_access_token(token) is None
    assert decode_access_token("garbage") is None


def test_reset_token_is_stored_hashed():
    token, hashed, expire = generate_reset_token()
    assert hashed == hashlib.sha256(token.encode()).hexdigest()
    assert hashed == hash_reset_token(token)
    assert token != hashed

    remaining = expire - datetime.now(timezone.utc)
    assert timedelta(minutes=9) < remaining <= timedelta(minutes=10)
