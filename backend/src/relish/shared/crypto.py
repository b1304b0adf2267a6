"""Field-level authenticated encryption for PII at rest.

Uses AES-256-GCM with the ``enc_key`` derived in ``relish.shared.keys``.
Every call draws a fresh random 96-bit nonce, so encrypting the same value
twice yields different payloads. An optional context label is authenticated
as associated data: a ciphertext copied into the wrong column fails to decrypt.

Wire format: ``base64(nonce) ":" base64(ciphertext) ":" base64(tag)``.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from relish.observability.metrics import DECRYPTION_FAILURES
from relish.shared.exceptions import DecryptionError
from relish.shared.logging import get_logger

logger = get_logger(__name__)

NONCE_BYTES = 12  # 96-bit nonce recommended for GCM
TAG_BYTES = 16
SEPARATOR = ":"


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(part: str) -> bytes:
    return base64.b64decode(part.encode("ascii"), validate=True)


@dataclass(frozen=True)
class EncryptedField:
    """Parsed form of one encrypted value: {nonce, ciphertext, tag}."""

    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def serialize(self) -> str:
        return SEPARATOR.join(
            (_b64encode(self.nonce), _b64encode(self.ciphertext), _b64encode(self.tag))
        )

    @classmethod
    def parse(cls, payload: str) -> EncryptedField:
        """Parse a serialized triple.

        Raises:
            DecryptionError: If the payload does not have exactly three
                base64 parts with a valid nonce and tag length.
        """
        parts = payload.split(SEPARATOR) if isinstance(payload, str) else []
        if len(parts) != 3:
            raise DecryptionError("malformed_payload")
        nonce_b64, ct_b64, tag_b64 = parts
        if not nonce_b64 or not tag_b64:
            raise DecryptionError("malformed_payload")
        try:
            nonce = _b64decode(nonce_b64)
            ciphertext = _b64decode(ct_b64)
            tag = _b64decode(tag_b64)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise DecryptionError("malformed_payload") from exc
        if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
            raise DecryptionError("malformed_payload")
        return cls(nonce=nonce, ciphertext=ciphertext, tag=tag)


class EnvelopeCipher:
    """AES-256-GCM encrypt/decrypt of single string fields."""

    def __init__(self, enc_key: bytes) -> None:
        self._aead = AESGCM(enc_key)

    def __repr__(self) -> str:
        return "EnvelopeCipher(<key hidden>)"

    def encrypt(self, plaintext: str, context: str | None = None) -> str:
        """Encrypt a string, binding it to ``context`` when given.

        The nonce is always generated here; callers cannot supply one.
        """
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), _aad(context))
        field = EncryptedField(nonce=nonce, ciphertext=sealed[:-TAG_BYTES], tag=sealed[-TAG_BYTES:])
        return field.serialize()

    def decrypt(self, payload: str, context: str | None = None) -> str:
        """Decrypt a serialized payload.

        Raises:
            DecryptionError: On a malformed payload, a failed tag check, or a
                context that differs from the one used at encryption time.
        """
        try:
            field = EncryptedField.parse(payload)
        except DecryptionError as exc:
            self._record_failure(exc.reason, context)
            raise DecryptionError(exc.reason, context) from exc

        try:
            data = self._aead.decrypt(field.nonce, field.ciphertext + field.tag, _aad(context))
        except InvalidTag as exc:
            self._record_failure("authentication_failed", context)
            raise DecryptionError("authentication_failed", context) from exc

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            self._record_failure("invalid_utf8", context)
            raise DecryptionError("invalid_utf8", context) from exc

    def decrypt_optional(self, payload: str | None, context: str | None = None) -> str | None:
        """Decrypt a nullable column value; None stays None."""
        if payload is None:
            return None
        return self.decrypt(payload, context)

    @staticmethod
    def _record_failure(reason: str, context: str | None) -> None:
        DECRYPTION_FAILURES.labels(context=context or "none").inc()
        logger.warning("decryption_failed", reason=reason, context=context)


def _aad(context: str | None) -> bytes | None:
    return context.encode("utf-8") if context else None


def is_encrypted(value: str | None) -> bool:
    """Check if a value looks like a serialized encrypted field."""
    if not value:
        return False
    try:
        EncryptedField.parse(value)
    except DecryptionError:
        return False
    return True
