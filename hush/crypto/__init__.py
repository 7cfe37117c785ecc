"""Symmetric envelope encryption for data at rest."""

from .envelope import decrypt, decrypt_object, encrypt, encrypt_object, random_bytes

__all__ = [
    'encrypt',
    'decrypt',
    'encrypt_object',
    'decrypt_object',
    'random_bytes',
]
