"""Tests for Ed25519 signing of record content."""

from __future__ import annotations

import pytest

from apiwatch import signing
from apiwatch.core.errors import SigningKeyError


class TestSign:
    def test_signature_length(self, secret_key):
        assert len(signing.sign(secret_key, b"content")) == signing.SIGNATURE_LENGTH

    def test_signature_verifies(self, secret_key):
        sig = signing.sign(secret_key, b"content")
        assert signing.verify(signing.public_key(secret_key), b"content", sig)

    def test_deterministic(self, secret_key):
        assert signing.sign(secret_key, b"content") == signing.sign(secret_key, b"content")

    def test_uppercase_hex_accepted(self, secret_key):
        assert signing.sign(secret_key.upper(), b"x") == signing.sign(secret_key, b"x")

    def test_tampered_message_fails_verification(self, secret_key):
        sig = signing.sign(secret_key, b"content")
        assert not signing.verify(signing.public_key(secret_key), b"content!", sig)

    def test_other_key_fails_verification(self, secret_key):
        sig = signing.sign(secret_key, b"content")
        other = signing.public_key(signing.generate_secret_key())
        assert not signing.verify(other, b"content", sig)

    def test_verify_rejects_malformed_public_key(self, secret_key):
        sig = signing.sign(secret_key, b"content")
        assert not signing.verify(b"short", b"content", sig)


class TestKeyValidation:
    def test_not_hex(self):
        with pytest.raises(SigningKeyError, match="not valid hex"):
            signing.sign("zz" * 64, b"x")

    def test_odd_length_hex(self, secret_key):
        with pytest.raises(SigningKeyError):
            signing.sign(secret_key[:-1], b"x")

    def test_seed_only_is_too_short(self, secret_key):
        with pytest.raises(SigningKeyError, match="must be 64 bytes, got 32"):
            signing.sign(secret_key[:64], b"x")

    def test_empty_key(self):
        with pytest.raises(SigningKeyError, match="got 0"):
            signing.sign("", b"x")

    def test_public_half_must_match_seed(self, secret_key):
        other = signing.generate_secret_key()
        spliced = secret_key[:64] + other[64:]
        with pytest.raises(SigningKeyError, match="does not match"):
            signing.sign(spliced, b"x")

    def test_public_key_validates_too(self):
        with pytest.raises(SigningKeyError):
            signing.public_key("00")


class TestGenerate:
    def test_layout(self):
        key = signing.generate_secret_key()
        assert len(key) == 2 * signing.SECRET_KEY_LENGTH
        assert signing.public_key(key).hex() == key[64:]

    def test_fresh_each_time(self):
        assert signing.generate_secret_key() != signing.generate_secret_key()
