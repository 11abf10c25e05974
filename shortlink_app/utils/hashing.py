"""
Content fingerprinting and secret hashing (SHA-256, lowercase hex).
"""

import hashlib
import json
from typing import Optional


def fingerprint(
    original_url: str,
    ios_url: Optional[str] = "",
    android_url: Optional[str] = "",
    desktop_url: Optional[str] = "",
    mac_url: Optional[str] = "",
) -> str:
    """
    Deduplication key for a destination set.

    The five fields are encoded as a JSON array before hashing, so field
    boundaries stay unambiguous: ("a", "b") and ("a|b", "") never share
    an encoding. Missing overrides count as empty strings.
    """
    fields = [original_url, ios_url, android_url, desktop_url, mac_url]
    encoded = json.dumps([field or "" for field in fields], separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def hash_secret(secret: str) -> str:
    """One-way hash of an opaque credential for storage and comparison"""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
