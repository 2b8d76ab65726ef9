# tests/unit/core/test_signing.py
"""Tests for HMAC-SHA256 batch signing."""

import hashlib
import hmac

from hypothesis import given
from hypothesis import strategies as st

from bloop.core.security import SIGNATURE_HEADER, sign, verify


class TestSign:
    """Tests for sign()."""

    def test_known_vector(self) -> None:
        """Matches the stdlib HMAC-SHA256 hex digest."""
        body = b'{"events":[]}'
        expected = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
        assert sign(body, b"secret") == expected

    def test_rfc4231_test_case_2(self) -> None:
        """RFC 4231 test case 2 ("Jefe")."""
        assert (
            sign(b"what do ya want for nothing?", b"Jefe")
            == "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
        )

    def test_str_and_bytes_inputs_agree(self) -> None:
        assert sign('{"a":"é"}', "secret") == sign('{"a":"é"}'.encode(), b"secret")

    def test_output_is_64_lowercase_hex(self) -> None:
        signature = sign(b"body", b"secret")
        assert len(signature) == 64
        assert signature == signature.lower()
        int(signature, 16)

    def test_deterministic(self) -> None:
        assert sign(b"body", b"secret") == sign(b"body", b"secret")

    def test_single_byte_change_changes_signature(self) -> None:
        assert sign(b"body1", b"secret") != sign(b"body2", b"secret")

    def test_secret_change_changes_signature(self) -> None:
        assert sign(b"body", b"secret-a") != sign(b"body", b"secret-b")

    def test_header_name(self) -> None:
        assert SIGNATURE_HEADER == "X-Signature"


class TestVerify:
    """Tests for verify()."""

    def test_accepts_matching_signature(self) -> None:
        assert verify(b"body", b"secret", sign(b"body", b"secret"))

    def test_accepts_uppercase_hex(self) -> None:
        assert verify(b"body", b"secret", sign(b"body", b"secret").upper())

    def test_rejects_tampered_body(self) -> None:
        assert not verify(b"body!", b"secret", sign(b"body", b"secret"))

    @given(body=st.binary(), secret=st.binary(min_size=1))
    def test_sign_verify_property(self, body: bytes, secret: bytes) -> None:
        assert verify(body, secret, sign(body, secret))
