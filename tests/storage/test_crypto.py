"""Tests for AES-256-GCM token encryption."""

import base64

import pytest

from meitre_mcp.storage.crypto import (
    NONCE_LENGTH,
    DecryptionError,
    InvalidKeyError,
    TokenCipher,
    decode_key,
    generate_key,
)
from tests.conftest import OTHER_KEY, TEST_KEY


class TestDecodeKey:
    def test_accepts_32_byte_key(self):
        assert decode_key(TEST_KEY) == b"k" * 32

    def test_rejects_short_key(self):
        short = base64.b64encode(b"x" * 16).decode()
        with pytest.raises(InvalidKeyError, match="32 bytes"):
            decode_key(short)

    def test_rejects_long_key(self):
        long = base64.b64encode(b"x" * 64).decode()
        with pytest.raises(InvalidKeyError):
            decode_key(long)

    def test_rejects_non_base64(self):
        with pytest.raises(InvalidKeyError, match="base64"):
            decode_key("not base64 at all!")

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidKeyError):
            decode_key("")

    def test_invalid_key_is_a_value_error(self):
        with pytest.raises(ValueError):
            TokenCipher("abc")


class TestGenerateKey:
    def test_generated_key_is_valid(self):
        assert len(decode_key(generate_key())) == 32

    def test_unique_each_call(self):
        assert generate_key() != generate_key()


class TestRoundTrip:
    @pytest.mark.parametrize(
        "plaintext",
        [
            "eyJhbGciOiJIUzI1NiJ9.payload.signature",
            "token+with/base64=reserved==chars",
            "ñandú 東京 🍣",
            "x",
            "a" * 4096,
        ],
    )
    def test_decrypt_returns_original(self, plaintext):
        cipher = TokenCipher(TEST_KEY)
        assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext

    def test_fresh_nonce_per_encryption(self):
        cipher = TokenCipher(TEST_KEY)
        first = cipher.encrypt("same-token")
        second = cipher.encrypt("same-token")
        assert first != second
        assert base64.b64decode(first)[:NONCE_LENGTH] != base64.b64decode(second)[:NONCE_LENGTH]

    def test_ciphertext_does_not_contain_plaintext(self):
        cipher = TokenCipher(TEST_KEY)
        raw = base64.b64decode(cipher.encrypt("plaintext-token"))
        assert b"plaintext-token" not in raw

    def test_decrypt_needs_only_ciphertext_and_key(self):
        ciphertext = TokenCipher(TEST_KEY).encrypt("tok")
        assert TokenCipher(TEST_KEY).decrypt(ciphertext) == "tok"


class TestFailClosed:
    def test_wrong_key_fails(self):
        ciphertext = TokenCipher(TEST_KEY).encrypt("secret-token")
        with pytest.raises(DecryptionError):
            TokenCipher(OTHER_KEY).decrypt(ciphertext)

    def test_tampered_ciphertext_fails(self):
        cipher = TokenCipher(TEST_KEY)
        raw = bytearray(base64.b64decode(cipher.encrypt("secret-token")))
        raw[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(base64.b64encode(bytes(raw)).decode())

    def test_tampered_nonce_fails(self):
        cipher = TokenCipher(TEST_KEY)
        raw = bytearray(base64.b64decode(cipher.encrypt("secret-token")))
        raw[0] ^= 0x80
        with pytest.raises(DecryptionError):
            cipher.decrypt(base64.b64encode(bytes(raw)).decode())

    def test_truncated_ciphertext_fails(self):
        cipher = TokenCipher(TEST_KEY)
        raw = base64.b64decode(cipher.encrypt("secret-token"))
        with pytest.raises(DecryptionError, match="too short"):
            cipher.decrypt(base64.b64encode(raw[:NONCE_LENGTH + 4]).decode())

    def test_non_base64_fails(self):
        with pytest.raises(DecryptionError):
            TokenCipher(TEST_KEY).decrypt("%%% not base64 %%%")
