"""Request signing for collector batches."""

from bloop.core.security.signing import SIGNATURE_HEADER, sign, verify

__all__ = ["SIGNATURE_HEADER", "sign", "verify"]
