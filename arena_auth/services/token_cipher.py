"""Symmetric encryption utilities for protecting stored tokens.

Ciphertext format (version 1)::

    <iv hex>:<ciphertext hex>

AES-256-CBC with PKCS7 padding and a fresh 16-byte IV for every call, so the
same plaintext never encrypts to the same string twice.
"""

from __future__ import annotations

import hashlib
import os
import re

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from arena_auth.core.errors import DecryptionError, MalformedCiphertextError

_IV_BYTES = 16
_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")
_HEX = re.compile(r"\A[0-9a-fA-F]+\Z")


class TokenCipherService:
    """Encrypt and decrypt sensitive strings with a server-held AES key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        if _HEX_KEY.match(secret):
            self._key = bytes.fromhex(secret)
        else:
            self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return ``iv:ciphertext`` in hex."""
        iv = os.urandom(_IV_BYTES)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt an ``iv:ciphertext`` string and return the plaintext."""
        iv_hex, sep, body_hex = ciphertext.partition(":")
        if not sep or not iv_hex or not body_hex or ":" in body_hex:
            raise MalformedCiphertextError(
                "Invalid encrypted data format. Expected IV:Ciphertext."
            )
        # bytes.fromhex tolerates whitespace; the stored format does not.
        if not _HEX.match(iv_hex) or not _HEX.match(body_hex):
            raise MalformedCiphertextError("Encrypted data halves must be hex encoded.")
        try:
            iv = bytes.fromhex(iv_hex)
            body = bytes.fromhex(body_hex)
        except ValueError as exc:
            raise MalformedCiphertextError(
                "Encrypted data halves must be hex encoded."
            ) from exc

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as exc:
            raise DecryptionError(
                "Failed to decrypt token; key or IV does not match the ciphertext."
            ) from exc


__all__ = ["TokenCipherService"]
