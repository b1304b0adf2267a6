"""Key derivation from the process master secret.

One 32-byte master key (``SECRET_MASTER_KEY``, 64 hex chars) is expanded with
HKDF-SHA256 into two independent subkeys, one for AES-GCM and one for the
blind-index HMAC. The salt is empty, which is acceptable only because the
master key is required to be high-entropy.
"""

import binascii
import hmac
from dataclasses import dataclass, field
from functools import lru_cache

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from relish.config import get_settings
from relish.shared.exceptions import ConfigurationError

MASTER_KEY_BYTES = 32
DERIVED_KEY_BYTES = 32

KEY_NAMESPACE = "personal-crm"
ENC_KEY_LABEL = "enc-key:v1"
MAC_KEY_LABEL = "mac-key:v1"


@dataclass(frozen=True)
class KeyRing:
    """Derived subkeys held in memory for the process lifetime."""

    enc_key: bytes = field(repr=False)
    mac_key: bytes = field(repr=False)


def parse_master_key(master_hex: str | None) -> bytes:
    """Decode and validate the hex-encoded master key.

    Raises:
        ConfigurationError: If the key is missing, not hex, or not 32 bytes.
    """
    value = (master_hex or "").strip()
    if not value:
        raise ConfigurationError("SECRET_MASTER_KEY is not set")
    if len(value) != MASTER_KEY_BYTES * 2:
        raise ConfigurationError(
            f"SECRET_MASTER_KEY must be {MASTER_KEY_BYTES} bytes ({MASTER_KEY_BYTES * 2} hex chars)"
        )
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError("SECRET_MASTER_KEY must be hex encoded") from exc


def derive_key(master: bytes, label: str) -> bytes:
    """Derive a 32-byte purpose-specific key (pure function of master and label)."""
    if len(master) != MASTER_KEY_BYTES:
        raise ConfigurationError(f"Master key must be exactly {MASTER_KEY_BYTES} bytes")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=DERIVED_KEY_BYTES,
        salt=None,
        info=f"{KEY_NAMESPACE}:{label}".encode(),
    )
    return hkdf.derive(master)


def derive_key_ring(master: bytes) -> KeyRing:
    """Derive the encryption and indexing keys from the master key."""
    enc_key = derive_key(master, ENC_KEY_LABEL)
    mac_key = derive_key(master, MAC_KEY_LABEL)
    if hmac.compare_digest(enc_key, mac_key):
        raise ConfigurationError("Derived encryption and index keys collide")
    return KeyRing(enc_key=enc_key, mac_key=mac_key)


@lru_cache(maxsize=1)
def get_key_ring() -> KeyRing:
    """Get the process-wide key ring, derived once from settings.

    Call at startup so a missing or malformed master key aborts the process
    before it serves traffic.
    """
    settings = get_settings()
    return derive_key_ring(parse_master_key(settings.secret_master_key))
