"""
Tests for fingerprinting and secret hashing.
"""
import hashlib

from shortlink_app.utils.hashing import fingerprint, hash_secret


class TestFingerprint:

    def test_is_deterministic(self):
        first = fingerprint("https://example.com/a", "https://apps.apple.com/x")
        second = fingerprint("https://example.com/a", "https://apps.apple.com/x")

        assert first == second

    def test_is_lowercase_sha256_hex(self):
        value = fingerprint("https://example.com/a")

        assert len(value) == 64
        assert value == value.lower()
        int(value, 16)

    def test_missing_overrides_equal_empty_strings(self):
        assert fingerprint("https://example.com/a") == fingerprint(
            "https://example.com/a", None, None, None, None
        )
        assert fingerprint("https://example.com/a") == fingerprint(
            "https://example.com/a", "", "", "", ""
        )

    def test_field_position_matters(self):
        """Same URL as an iOS override vs an Android override"""
        ios = fingerprint("https://example.com/a", "https://m.example.com/")
        android = fingerprint("https://example.com/a", "", "https://m.example.com/")

        assert ios != android

    def test_field_boundaries_are_unambiguous(self):
        """Joining with a separator must not let two field sets collide"""
        assert fingerprint("a", "b", "", "", "") != fingerprint("a|b", "", "", "", "")
        assert fingerprint("a", "b", "", "", "") != fingerprint("ab", "", "", "", "")
        assert fingerprint("a,", "b") != fingerprint("a", ",b")


class TestHashSecret:

    def test_matches_sha256(self):
        assert hash_secret("my-api-key") == hashlib.sha256(b"my-api-key").hexdigest()

    def test_different_secrets_differ(self):
        assert hash_secret("key-1") != hash_secret("key-2")
