"""Request authentication: Ed25519 interaction signatures and shared-secret bearers."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

import nacl.exceptions
import nacl.signing
import structlog
from pydantic import SecretStr

log = structlog.get_logger()


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    # Exact bytes received; parse these, never a re-serialized form
    raw_body: bytes
    error: str | None = None


def verify_ed25519(public_key_hex: str, timestamp: str, body: bytes, signature_hex: str) -> bool:
    """Verify a Discord interaction signature over ``timestamp + body``."""
    try:
        key = nacl.signing.VerifyKey(bytes.fromhex(public_key_hex))
        key.verify(timestamp.encode() + body, bytes.fromhex(signature_hex))
        return True
    except (ValueError, TypeError, nacl.exceptions.BadSignatureError):
        return False


def verify_interaction_request(
    raw_body: bytes,
    signature: str | None,
    timestamp: str | None,
    public_key: str,
) -> VerificationResult:
    if not signature or not timestamp:
        return VerificationResult(False, raw_body, "missing signature headers")
    if not public_key:
        return VerificationResult(False, raw_body, "public key not configured")
    if not verify_ed25519(public_key, timestamp, raw_body, signature):
        return VerificationResult(False, raw_body, "invalid signature")
    return VerificationResult(True, raw_body, None)


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two strings in time independent of where (or whether) lengths differ.

    Both sides are hashed first so the digest comparison always runs over
    equal-length inputs.
    """
    da = hashlib.sha256(a.encode("utf-8")).digest()
    db = hashlib.sha256(b.encode("utf-8")).digest()
    return hmac.compare_digest(da, db)


@dataclass(frozen=True)
class BearerCheck:
    ok: bool
    # True when the expected secret is missing: an operator fault, not a client one
    misconfigured: bool = False


def verify_bearer(authorization: str | None, secret: SecretStr | str | None) -> BearerCheck:
    expected = secret.get_secret_value() if isinstance(secret, SecretStr) else (secret or "")
    if not expected:
        log.error("webhook.secret_not_configured")
        return BearerCheck(ok=False, misconfigured=True)
    ok = constant_time_equals(authorization or "", f"Bearer {expected}")
    return BearerCheck(ok=ok)
