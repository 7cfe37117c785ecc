"""
Session envelope encryption using AES-256-GCM.

Every call to ``encrypt`` draws a fresh 96-bit nonce, so a key can be reused
across writes. Tampering or a wrong key is detected at decrypt time and
reported as ``IntegrityError``.
"""

import base64
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import IntegrityError
from ..models import Envelope

KEY_LENGTH_BYTES = 32  # 256 bits
NONCE_LENGTH_BYTES = 12  # 96 bits, recommended for AES-GCM


def random_bytes(length: int) -> bytes:
    """Cryptographically secure random bytes."""
    return os.urandom(length)


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH_BYTES:
        raise ValueError(f"Session key must be {KEY_LENGTH_BYTES} bytes, got {len(key)}")


def encrypt(key: bytes, plaintext: str) -> Envelope:
    """
    Encrypt plaintext using AES-256-GCM.

    Args:
        key: 32-byte encryption key
        plaintext: String to encrypt

    Returns:
        Envelope with a fresh nonce and the ciphertext (tag appended)
    """
    _check_key(key)
    nonce = random_bytes(NONCE_LENGTH_BYTES)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return Envelope(nonce=nonce, ciphertext=ciphertext)


def decrypt(key: bytes, envelope: Envelope) -> str:
    """
    Decrypt an envelope produced by ``encrypt``.

    Raises:
        IntegrityError: wrong key, tampered data or malformed envelope
    """
    _check_key(key)
    if len(envelope.nonce) != NONCE_LENGTH_BYTES:
        raise IntegrityError("Envelope nonce has the wrong length")
    try:
        plaintext = AESGCM(key).decrypt(envelope.nonce, envelope.ciphertext, None)
    except InvalidTag:
        raise IntegrityError("Session payload failed authentication") from None
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise IntegrityError("Session payload is not valid UTF-8") from None


def encrypt_object(key: bytes, data: Any) -> Envelope:
    """Encrypt a JSON-serializable object."""
    return encrypt(key, json.dumps(data, separators=(",", ":")))


def decrypt_object(key: bytes, envelope: Envelope) -> Any:
    """Decrypt and parse a JSON object; bad JSON is an integrity failure."""
    text = decrypt(key, envelope)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        raise IntegrityError("Session payload is not valid JSON") from None


def envelope_to_dict(envelope: Envelope) -> dict[str, str]:
    return {
        "nonce": base64.b64encode(envelope.nonce).decode("ascii"),
        "ciphertext": base64.b64encode(envelope.ciphertext).decode("ascii"),
    }


def envelope_from_dict(raw: dict[str, Any]) -> Envelope:
    """Rebuild an envelope from its stored form."""
    try:
        return Envelope(
            nonce=base64.b64decode(raw["nonce"], validate=True),
            ciphertext=base64.b64decode(raw["ciphertext"], validate=True),
        )
    except (KeyError, TypeError, ValueError):
        raise IntegrityError("Stored envelope is malformed") from None
