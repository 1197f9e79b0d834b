"""Unit tests for auth/passwords.py -- bcrypt hashing and verification.

Covers:
- hash_password() never returns the plaintext and salts every call
- verify_password() accepts the right password and rejects a wrong one
- the configured work factor ends up in the hash
- input beyond bcrypt's 72-byte limit is truncated, not rejected
- a malformed stored hash raises PasswordHashError
"""

import pytest

from auth.passwords import hash_password, verify_password
from core.errors import PasswordHashError


def test_hash_is_not_plaintext_and_is_salted():
    first = hash_password("password1")
    second = hash_password("password1")
    assert first != "password1"
    assert first.startswith("$2")
    assert first != second


def test_verify_accepts_correct_password():
    hashed = hash_password("password1")
    assert verify_password("password1", hashed) is True


def test_verify_rejects_wrong_password():
    hashed = hash_password("password1")
    assert verify_password("password2", hashed) is False


def test_test_environment_uses_minimum_cost():
    # The test suite runs with ENVIRONMENT=test, which pins the cost to 4.
    assert hash_password("pw").split("$")[2] == "04"


def test_explicit_work_factor_overrides_settings():
    assert hash_password("pw", work_factor=5).split("$")[2] == "05"


def test_long_password_is_truncated_to_72_bytes():
    prefix = "a" * 72
    hashed = hash_password(prefix + "first-suffix")
    assert verify_password(prefix + "other-suffix", hashed) is True
    assert verify_password("a" * 71, hashed) is False


def test_multibyte_password_round_trips():
    hashed = hash_password("mot de passe été")
    assert verify_password("mot de passe été", hashed) is True
    assert verify_password("mot de passe ete", hashed) is False


@pytest.mark.parametrize("stored", ["not-a-hash", "$2b$04$short"])
def test_malformed_hash_raises(stored):
    with pytest.raises(PasswordHashError) as exc_info:
        verify_password("password1", stored)
    assert exc_info.value.status == 500
