"""Known-answer vector for the legacy aesgcm encoding.

The inputs are fixed P-256 key pairs, salt and auth secret for the message
"I am the walrus". The expected ECDH secret, PRK, CEK, NONCE and body were
produced outside this package with two independent implementations (OpenSSL
3.0 ``pkeyutl``/``kdf``/``enc`` and Node.js ``crypto``), which agree byte for
byte. Intermediate values are checked separately so a failure points at the
step that diverged.

To update: regenerate with an independent ECDH/HKDF/AES-GCM implementation.
"""

import pytest

from webpush_ece.constants import LEGACY_AUTH_INFO, LEGACY_CEK_INFO, LEGACY_CONTEXT_LABEL, LEGACY_NONCE_INFO
from webpush_ece.ece import _exchange, decrypt_aesgcm, derive_aesgcm_keys, encrypt_aesgcm, hkdf
from webpush_ece.exceptions import DecryptionError
from webpush_ece.headers import b64url_decode
from webpush_ece.keys import load_private_key, load_public_key

PLAINTEXT = b"I am the walrus"

AS_PRIVATE = "nCScek-QpEjmOOlT-rQ38nZzvdPlqa00Zy0i6m2OJvY"
AS_PUBLIC = "BNoRDbb84JGm8g5Z5CFxurSqsXWJ11ItfXEWYVLE85Y7CYkDjXsIEc4aqxYaQ1G8BqkXCJ6DPpDrWtdWj_mugHU"
UA_PRIVATE = "9FWl15_QUQAWDaD3k3l50ZBZQJ4au27F1V4F0uLSD_M"
UA_PUBLIC = "BCEkBjzL8Z3C-oi2Q7oE5t2Np-p7osjGLg93qUP0wvqRT21EEWyf0cQDQcakQMqz4hQKYOQ3il2nNZct4HgAUQU"
AUTH_SECRET = "R29vIGdvb2Qgbm90IGJhZA"
SALT = "lngarbyKfMoi9Z75xYXmkg"

ECDH_SECRET = "RNjC-NVW4BGJbxWPW7G2mowsLeDa53LYKYm4--NOQ6Y"
PRK = "j_X4r9DEmb_laYUM6W5E9OgZLaaodA5VvPU2pSZw5B8"
CEK = "r4i6ecnZlzbcP0y0cDsuuA"
NONCE = "qnBhjH_AB894lYG5"

# 2 zero padding-length bytes + 15 data bytes + 16-byte tag
BODY = "bWNRBjbIH7OgjLiH8WV0kGP8LGAgSr9_yEj8nb1lT8VE"


def _context() -> bytes:
    ua_public = b64url_decode(UA_PUBLIC)
    as_public = b64url_decode(AS_PUBLIC)
    return LEGACY_CONTEXT_LABEL + b"\x00\x41" + ua_public + b"\x00\x41" + as_public


@pytest.mark.vectors
class TestAesgcmKeySchedule:
    """Intermediate values of the legacy key schedule."""

    def test_ecdh_secret(self) -> None:
        """Both sides of the exchange agree on the secret."""
        as_side = _exchange(load_private_key(AS_PRIVATE), load_public_key(UA_PUBLIC))
        ua_side = _exchange(load_private_key(UA_PRIVATE), load_public_key(AS_PUBLIC))

        assert as_side == b64url_decode(ECDH_SECRET)
        assert ua_side == as_side

    def test_prk(self) -> None:
        """PRK = HKDF(auth, ecdh, "Content-Encoding: auth" || 0x00, 32)."""
        prk = hkdf(b64url_decode(AUTH_SECRET), b64url_decode(ECDH_SECRET), LEGACY_AUTH_INFO, 32)

        assert prk == b64url_decode(PRK)

    def test_cek_and_nonce(self) -> None:
        """CEK and NONCE labels carry the length-prefixed P-256 key context."""
        salt = b64url_decode(SALT)
        prk = b64url_decode(PRK)

        assert hkdf(salt, prk, LEGACY_CEK_INFO + _context(), 16) == b64url_decode(CEK)
        assert hkdf(salt, prk, LEGACY_NONCE_INFO + _context(), 12) == b64url_decode(NONCE)

    def test_derive_aesgcm_keys(self) -> None:
        """The combined derivation matches the expected outputs."""
        keys = derive_aesgcm_keys(
            b64url_decode(ECDH_SECRET),
            b64url_decode(AUTH_SECRET),
            b64url_decode(UA_PUBLIC),
            b64url_decode(AS_PUBLIC),
            b64url_decode(SALT),
        )

        assert keys.key == b64url_decode(CEK)
        assert keys.nonce == b64url_decode(NONCE)

    def test_info_labels(self) -> None:
        """Labels carry a trailing NUL byte."""
        assert LEGACY_AUTH_INFO == b"Content-Encoding: auth\x00"
        assert LEGACY_CEK_INFO == b"Content-Encoding: aesgcm\x00"
        assert LEGACY_NONCE_INFO == b"Content-Encoding: nonce\x00"
        assert LEGACY_CONTEXT_LABEL == b"P-256\x00"


@pytest.mark.vectors
class TestAesgcmMessage:
    """Complete encrypted record."""

    def test_encrypt_matches_body(self) -> None:
        """Fixed salt and sender key reproduce the body exactly."""
        result = encrypt_aesgcm(
            PLAINTEXT,
            UA_PUBLIC,
            AUTH_SECRET,
            salt=b64url_decode(SALT),
            private_key=AS_PRIVATE,
        )

        assert result.ciphertext == b64url_decode(BODY)
        assert len(result.ciphertext) == 33
        assert result.encryption_header == f"salt={SALT}"
        assert result.crypto_key_header == f"dh={AS_PUBLIC}"

    def test_decrypt_body(self) -> None:
        """Subscriber key and auth secret recover the plaintext."""
        assert decrypt_aesgcm(b64url_decode(BODY), SALT, AS_PUBLIC, UA_PRIVATE, AUTH_SECRET) == PLAINTEXT

    def test_decrypt_with_wrong_salt_fails(self) -> None:
        with pytest.raises(DecryptionError):
            decrypt_aesgcm(b64url_decode(BODY), b"\x00" * 16, AS_PUBLIC, UA_PRIVATE, AUTH_SECRET)
