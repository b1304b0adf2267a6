"""Unit tests for master key parsing and subkey derivation."""

import pytest

from relish.shared.exceptions import ConfigurationError
from relish.shared.keys import (
    DERIVED_KEY_BYTES,
    ENC_KEY_LABEL,
    MAC_KEY_LABEL,
    derive_key,
    derive_key_ring,
    parse_master_key,
)

MASTER_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


class TestParseMasterKey:
    """Test decoding of SECRET_MASTER_KEY."""

    def test_valid_hex_decodes_to_32_bytes(self):
        assert parse_master_key(MASTER_HEX) == bytes.fromhex(MASTER_HEX)

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_master_key(f"  {MASTER_HEX}\n") == bytes.fromhex(MASTER_HEX)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_key_is_fatal(self, value):
        with pytest.raises(ConfigurationError, match="not set"):
            parse_master_key(value)

    @pytest.mark.parametrize("value", [MASTER_HEX[:-2], MASTER_HEX + "00"])
    def test_wrong_length_is_fatal(self, value):
        with pytest.raises(ConfigurationError, match="32 bytes"):
            parse_master_key(value)

    def test_non_hex_is_fatal(self):
        with pytest.raises(ConfigurationError, match="hex"):
            parse_master_key("zz" * 32)


class TestDeriveKey:
    """Test HKDF subkey derivation."""

    def test_derivation_is_deterministic(self):
        master = bytes.fromhex(MASTER_HEX)
        assert derive_key(master, ENC_KEY_LABEL) == derive_key(master, ENC_KEY_LABEL)

    def test_derived_key_length(self):
        key = derive_key(bytes.fromhex(MASTER_HEX), ENC_KEY_LABEL)
        assert len(key) == DERIVED_KEY_BYTES

    def test_labels_give_independent_keys(self):
        ring = derive_key_ring(bytes.fromhex(MASTER_HEX))
        assert ring.enc_key != ring.mac_key
        assert ring.enc_key != bytes.fromhex(MASTER_HEX)

    def test_different_master_gives_different_keys(self):
        other = bytes.fromhex("ff" * 32)
        assert derive_key(other, MAC_KEY_LABEL) != derive_key(bytes.fromhex(MASTER_HEX), MAC_KEY_LABEL)

    def test_short_master_is_rejected(self):
        with pytest.raises(ConfigurationError):
            derive_key(b"short", ENC_KEY_LABEL)

    def test_key_ring_repr_hides_keys(self):
        ring = derive_key_ring(bytes.fromhex(MASTER_HEX))
        assert ring.enc_key.hex() not in repr(ring)
        assert ring.mac_key.hex() not in repr(ring)


class TestGetKeyRing:
    """Test the cached process-wide key ring."""

    def test_uses_settings_master_key(self, monkeypatch):
        from relish.config import get_settings
        from relish.shared.keys import get_key_ring

        monkeypatch.setenv("SECRET_MASTER_KEY", MASTER_HEX)
        get_settings.cache_clear()
        get_key_ring.cache_clear()
        try:
            assert get_key_ring() == derive_key_ring(bytes.fromhex(MASTER_HEX))
        finally:
            get_settings.cache_clear()
            get_key_ring.cache_clear()

    def test_missing_master_key_aborts(self, monkeypatch):
        from relish.config import get_settings
        from relish.shared.keys import get_key_ring

        monkeypatch.setenv("SECRET_MASTER_KEY", "")
        get_settings.cache_clear()
        get_key_ring.cache_clear()
        try:
            with pytest.raises(ConfigurationError):
                get_key_ring()
        finally:
            get_settings.cache_clear()
            get_key_ring.cache_clear()
