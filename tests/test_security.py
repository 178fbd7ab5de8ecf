import pytest

from tours_api.core.security import PasswordHasher


@pytest.fixture(scope="module")
def hasher():
    return PasswordHasher(rounds=4)


@pytest.mark.parametrize("plain", ["pass1234", "correct horse battery staple", "pässwörd-ünïcode"])
def test_hash_verifies_only_the_original_password(hasher, plain):
    hashed = hasher.hash(plain)

    assert hashed != plain
    assert hasher.verify(plain, hashed)
    assert not hasher.verify(plain + "x", hashed)


def test_hash_is_salted(hasher):
    assert hasher.hash("pass1234") != hasher.hash("pass1234")


def test_cost_factor_is_embedded_in_hash():
    assert PasswordHasher(rounds=5).hash("pass1234").startswith("$2b$05$")


def test_empty_password_is_rejected(hasher):
    with pytest.raises(ValueError):
        hasher.hash("")


def test_verify_rejects_missing_or_garbage_hash(hasher):
    assert not hasher.verify("pass1234", None)
    assert not hasher.verify("pass1234", "")
    assert not hasher.verify("pass1234", "not-a-bcrypt-hash")
    assert not hasher.verify("", hasher.hash("pass1234"))


def test_dummy_verify_runs(hasher):
    hasher.dummy_verify()


def test_passwords_over_72_bytes_are_refused(hasher):
    hashed = hasher.hash("p" * 72)

    with pytest.raises(ValueError):
        hasher.hash("p" * 72 + "AAAAAAAA")
    assert not hasher.verify("p" * 72 + "ZZZZZZZZ", hashed)
    assert hasher.verify("p" * 72, hashed)
