# src/bloop/core/security/signing.py
"""HMAC-SHA256 signing of batch bodies.

The collector recomputes the digest over the exact request body bytes with
the shared secret and compares it against the X-Signature header. Any
re-serialization between signing and sending breaks verification, so the
engine signs the final encoded bytes and hands those same bytes to the
transport.
"""

import hashlib
import hmac

SIGNATURE_HEADER = "X-Signature"


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def sign(body: bytes | str, secret: bytes | str) -> str:
    """Compute the HMAC-SHA256 signature of a request body.

    Args:
        body: Exact bytes sent as the request body (str is UTF-8 encoded)
        secret: Shared secret (str is UTF-8 encoded)

    Returns:
        64-character lowercase hex string

    Example:
        >>> sig = sign(b'{"events":[]}', b"secret")
        >>> len(sig)
        64
        >>> sig == sign(b'{"events":[]}', b"secret")
        True
    """
    return hmac.new(
        key=_as_bytes(secret),
        msg=_as_bytes(body),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify(body: bytes | str, secret: bytes | str, signature: str) -> bool:
    """Check a signature in constant time."""
    return hmac.compare_digest(sign(body, secret), signature.lower())
