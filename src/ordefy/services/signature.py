"""Shopify webhook HMAC-SHA256 signing and verification."""

import base64
import hashlib
import hmac


def compute_hmac(body: bytes, secret: str) -> bytes:
    """Raw HMAC-SHA256 digest of the request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()


def sign_payload(body: bytes, secret: str) -> str:
    """Base64 signature, as Shopify sends it in X-Shopify-Hmac-Sha256."""
    return base64.b64encode(compute_hmac(body, secret)).decode("ascii")


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Check ``signature`` against the body in constant time.

    OAuth apps send a base64 digest, custom apps created from the Shopify admin
    send hex. Both are accepted.
    """
    if not secret or not secret.strip() or not signature:
        return False

    digest = compute_hmac(body, secret)
    presented = signature.strip().encode("ascii", errors="ignore")
    expected_b64 = base64.b64encode(digest)
    expected_hex = digest.hex().encode("ascii")

    # Both comparisons always run
    b64_ok = hmac.compare_digest(expected_b64, presented)
    hex_ok = hmac.compare_digest(expected_hex, presented.lower())
    return b64_ok or hex_ok
