"""Tests for PIN verification and note encryption."""
from subtracker.application.encryption import (
    create_pin_verification, verify_pin, get_encryption_key, encrypt_note, decrypt_note,
)

ITER = 1_000


def _material(pin="1234"):
    return create_pin_verification(pin, ITER)


def test_verification_material_fields():
    material = _material()
    assert set(material) == {"pin_verify_hash", "pin_verify_salt", "pin_encrypt_salt"}
    assert material["pin_verify_salt"] != material["pin_encrypt_salt"]


def test_verify_pin():
    m = _material("1234")
    assert verify_pin("1234", m["pin_verify_hash"], m["pin_verify_salt"], ITER)
    assert not verify_pin("4321", m["pin_verify_hash"], m["pin_verify_salt"], ITER)


def test_fresh_salts_each_time():
    assert _material()["pin_verify_hash"] != _material()["pin_verify_hash"]


def test_encrypt_decrypt():
    m = _material()
    key = get_encryption_key("1234", m["pin_encrypt_salt"], ITER)
    token = encrypt_note("account: alex@example.com", key)
    assert "alex" not in token
    assert decrypt_note(token, key) == "account: alex@example.com"


def test_nonce_differs_per_call():
    key = get_encryption_key("1234", _material()["pin_encrypt_salt"], ITER)
    assert encrypt_note("same", key) != encrypt_note("same", key)


def test_wrong_key_returns_none():
    m = _material()
    key = get_encryption_key("1234", m["pin_encrypt_salt"], ITER)
    wrong = get_encryption_key("9999", m["pin_encrypt_salt"], ITER)
    assert decrypt_note(encrypt_note("secret", key), wrong) is None


def test_corrupted_token_returns_none():
    key = get_encryption_key("1234", _material()["pin_encrypt_salt"], ITER)
    assert decrypt_note("not-a-token", key) is None
    assert decrypt_note("!!!.???", key) is None
    nonce, _, ct = encrypt_note("secret", key).partition(".")
    assert decrypt_note(f"{nonce}.{ct[:-4]}AAAA", key) is None
