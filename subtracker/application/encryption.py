"""
PIN-based encryption of sensitive subscription notes.

Uses AES-GCM from the cryptography library with PBKDF2-SHA256 key derivation.
Two independent materials are derived from the PIN:
  - verification hash (verify salt) — answers "is this the right PIN?"
  - encryption key (encrypt salt) — encrypts/decrypts the notes

The key is never persisted; callers derive it per request from the PIN.
"""
import base64
import binascii
import hmac
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

ITERATIONS = 100_000
KEY_LENGTH = 32  # AES-256
SALT_LENGTH = 16
NONCE_LENGTH = 12


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), validate=True)


def _derive(pin: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=iterations)
    return kdf.derive(pin.encode("utf-8"))


def generate_salt() -> str:
    return _b64encode(os.urandom(SALT_LENGTH))


def create_pin_verification(pin: str, iterations: int = ITERATIONS) -> dict:
    """
    Fresh PIN material for the settings row.

    Returns:
        {"pin_verify_hash", "pin_verify_salt", "pin_encrypt_salt"} (base64 strings)
    """
    verify_salt = os.urandom(SALT_LENGTH)
    encrypt_salt = os.urandom(SALT_LENGTH)
    return {
        "pin_verify_hash": _b64encode(_derive(pin, verify_salt, iterations)),
        "pin_verify_salt": _b64encode(verify_salt),
        "pin_encrypt_salt": _b64encode(encrypt_salt),
    }


def verify_pin(pin: str, stored_hash: str, verify_salt: str, iterations: int = ITERATIONS) -> bool:
    candidate = _b64encode(_derive(pin, _b64decode(verify_salt), iterations))
    return hmac.compare_digest(candidate, stored_hash)


def get_encryption_key(pin: str, encrypt_salt: str, iterations: int = ITERATIONS) -> bytes:
    return _derive(pin, _b64decode(encrypt_salt), iterations)


def encrypt_note(plaintext: str, key: bytes) -> str:
    """Encrypt to "base64(nonce).base64(ciphertext)"; a fresh nonce per call."""
    nonce = os.urandom(NONCE_LENGTH)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return _b64encode(nonce) + "." + _b64encode(ciphertext)


def decrypt_note(token: str, key: bytes) -> str | None:
    """Plaintext, or None on wrong key or corrupted data."""
    nonce_b64, sep, ciphertext_b64 = token.partition(".")
    if not sep or not nonce_b64 or not ciphertext_b64:
        return None
    try:
        nonce = _b64decode(nonce_b64)
        ciphertext = _b64decode(ciphertext_b64)
        return AESGCM(key).decrypt(nonce, ciphertext, None).decode("utf-8")
    except (InvalidTag, binascii.Error, ValueError):
        logger.warning("Failed to decrypt note (wrong PIN or corrupted data)")
        return None
