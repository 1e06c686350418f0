"""
Web Push message encryption.

Two content encodings share the same skeleton: an ephemeral ECDH agreement
with the subscriber's P-256 key, an auth-secret keyed HKDF step, and a
salt-keyed HKDF that yields a 16-byte AES-128-GCM key and a 12-byte nonce
base. They differ in derivation labels and record framing, and the labels
are not interchangeable.

aes128gcm (RFC 8188 + RFC 8291):
    body = salt(16) || rs(4B BE) || idlen(1) || as_public(65) || record_0 || ...
    record_i = AEAD(key, nonce ^ i, data || delimiter || zeros)
    delimiter = 0x01 for every record except the last, which uses 0x02

aesgcm (draft-ietf-webpush-encryption-04, legacy):
    body = AEAD(key, nonce ^ 0, pad_len(2B BE) || zeros || data)
    salt and as_public travel in the Encryption and Crypto-Key headers

Usage:
    from webpush_ece.ece import encrypt_aes128gcm

    body = encrypt_aes128gcm(b"hello", subscription_p256dh, subscription_auth)
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from webpush_ece._logging import get_logger
from webpush_ece.config import EncryptionOptions
from webpush_ece.constants import (
    AES128GCM_CEK_INFO,
    AES128GCM_NONCE_INFO,
    AES_128_GCM_KEY_SIZE,
    AES_GCM_NONCE_SIZE,
    AES_GCM_TAG_SIZE,
    DELIMITER_FINAL,
    DELIMITER_NON_FINAL,
    LEGACY_AUTH_INFO,
    LEGACY_CEK_INFO,
    LEGACY_CONTEXT_LABEL,
    LEGACY_NONCE_INFO,
    LEGACY_PAD_SIZE,
    LEGACY_RS,
    MAX_RECORD_COUNTER,
    RECORD_OVERHEAD,
    SALT_SIZE,
    SHA256_SIZE,
    WEBPUSH_INFO_LABEL,
    ContentEncoding,
)
from webpush_ece.envelope import encode_header, parse_header
from webpush_ece.exceptions import CryptoError, DecryptionError, InvalidOptionError, PayloadTooLargeError
from webpush_ece.headers import b64url_decode, b64url_encode
from webpush_ece.keys import load_private_key, load_public_key, public_key_bytes, validate_auth_secret

__all__ = [
    "DerivedKeys",
    "LegacyEncryptionResult",
    "Payload",
    "RecordDecryptor",
    "RecordEncryptor",
    "decrypt_aes128gcm",
    "decrypt_aesgcm",
    "derive_aes128gcm_keys",
    "derive_aesgcm_keys",
    "encrypt_aes128gcm",
    "encrypt_aesgcm",
    "hkdf",
    "normalize_payload",
    "record_nonce",
]

_logger = get_logger(__name__)

Payload = str | bytes | bytearray | memoryview | None
"""Message payload as accepted at the API boundary. Text is UTF-8 encoded."""

PrivateKeyInput = str | bytes | ec.EllipticCurvePrivateKey | None


def normalize_payload(payload: Payload) -> bytes:
    """
    Normalize a payload to bytes before any crypto operation.

    Args:
        payload: Text, binary data, or None

    Returns:
        Payload bytes (empty for None)

    Raises:
        InvalidOptionError: If payload has an unsupported type
    """
    if payload is None:
        return b""
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise InvalidOptionError(
        f"Unsupported payload type: {type(payload).__name__}",
        field="payload",
        limit="str | bytes",
        actual=type(payload).__name__,
    )


# =============================================================================
# Key schedule
# =============================================================================


def hkdf(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    """HKDF-SHA256 extract-then-expand (RFC 5869)."""
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


@dataclass(frozen=True)
class DerivedKeys:
    """Content-encryption key and nonce base for one message."""

    key: bytes
    """16-byte AES-128-GCM key."""

    nonce: bytes
    """12-byte nonce base, XORed with the record counter."""

    def __repr__(self) -> str:
        return "DerivedKeys(<redacted>)"


def derive_aes128gcm_keys(
    shared_secret: bytes,
    auth_secret: bytes,
    ua_public: bytes,
    as_public: bytes,
    salt: bytes,
) -> DerivedKeys:
    """
    Derive the aes128gcm key and nonce (RFC 8291 §3.3, §3.4).

    Args:
        shared_secret: ECDH secret between the two P-256 keys
        auth_secret: Subscription auth secret
        ua_public: Subscriber (user agent) public key, 65 bytes
        as_public: Application server ephemeral public key, 65 bytes
        salt: 16-byte message salt

    Returns:
        DerivedKeys for record encryption
    """
    key_info = WEBPUSH_INFO_LABEL + ua_public + as_public
    ikm = hkdf(auth_secret, shared_secret, key_info, SHA256_SIZE)
    return DerivedKeys(
        key=hkdf(salt, ikm, AES128GCM_CEK_INFO, AES_128_GCM_KEY_SIZE),
        nonce=hkdf(salt, ikm, AES128GCM_NONCE_INFO, AES_GCM_NONCE_SIZE),
    )


def _length_prefixed(key: bytes) -> bytes:
    return len(key).to_bytes(2, "big") + key


def derive_aesgcm_keys(
    shared_secret: bytes,
    auth_secret: bytes,
    ua_public: bytes,
    as_public: bytes,
    salt: bytes,
) -> DerivedKeys:
    """
    Derive the legacy aesgcm key and nonce.

    The auth step uses its own label, and both expansion labels carry a
    length-prefixed key context:
        context = "P-256" || 0x00 || len(ua) || ua_public || len(as) || as_public
    """
    prk = hkdf(auth_secret, shared_secret, LEGACY_AUTH_INFO, SHA256_SIZE)
    context = LEGACY_CONTEXT_LABEL + _length_prefixed(ua_public) + _length_prefixed(as_public)
    return DerivedKeys(
        key=hkdf(salt, prk, LEGACY_CEK_INFO + context, AES_128_GCM_KEY_SIZE),
        nonce=hkdf(salt, prk, LEGACY_NONCE_INFO + context, AES_GCM_NONCE_SIZE),
    )


def _exchange(private_key: ec.EllipticCurvePrivateKey, public_key: ec.EllipticCurvePublicKey) -> bytes:
    try:
        return private_key.exchange(ec.ECDH(), public_key)
    except ValueError as e:
        raise CryptoError("ECDH key agreement failed") from e


def _ephemeral_private_key(private_key: PrivateKeyInput) -> ec.EllipticCurvePrivateKey:
    if private_key is None:
        return ec.generate_private_key(ec.SECP256R1())
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return private_key
    return load_private_key(private_key, field="private_key")


def _resolve_salt(salt: bytes | None) -> bytes:
    if salt is None:
        return secrets.token_bytes(SALT_SIZE)
    if len(salt) != SALT_SIZE:
        raise InvalidOptionError(f"salt must be {SALT_SIZE} bytes", field="salt", limit=SALT_SIZE, actual=len(salt))
    return bytes(salt)


# =============================================================================
# Records
# =============================================================================


@dataclass
class RecordEncryptor:
    """
    AES-128-GCM record encryptor with counter-based nonces.

    nonce_i = nonce_base XOR uint96_be(i), i starting at 0.
    Not thread-safe: one instance encrypts one message.
    """

    keys: DerivedKeys
    counter: int = 0
    _cipher: AESGCM = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cipher = AESGCM(self.keys.key)

    def encrypt(self, plaintext: bytes) -> bytes:
        """
        Encrypt one record.

        Returns:
            ciphertext || 16-byte tag

        Raises:
            CryptoError: If the record counter is exhausted
        """
        if self.counter > MAX_RECORD_COUNTER:
            raise CryptoError(
                "Record counter exhausted", field="counter", limit=MAX_RECORD_COUNTER, actual=self.counter
            )
        nonce = record_nonce(self.keys.nonce, self.counter)
        ciphertext = self._cipher.encrypt(nonce, plaintext, None)
        self.counter += 1
        return ciphertext


@dataclass
class RecordDecryptor:
    """AES-128-GCM record decryptor, the inverse of RecordEncryptor."""

    keys: DerivedKeys
    counter: int = 0
    _cipher: AESGCM = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cipher = AESGCM(self.keys.key)

    def decrypt(self, record: bytes) -> bytes:
        """
        Decrypt one record.

        Raises:
            DecryptionError: If the tag does not verify
        """
        if len(record) < AES_GCM_TAG_SIZE:
            raise DecryptionError("Record too short", field="record", limit=AES_GCM_TAG_SIZE, actual=len(record))
        nonce = record_nonce(self.keys.nonce, self.counter)
        try:
            plaintext = self._cipher.decrypt(nonce, record, None)
        except InvalidTag as e:
            raise DecryptionError(f"Decryption failed for record {self.counter}") from e
        self.counter += 1
        return plaintext


def record_nonce(nonce_base: bytes, counter: int) -> bytes:
    """XOR the 96-bit big-endian record counter into the nonce base."""
    return (int.from_bytes(nonce_base, "big") ^ counter).to_bytes(AES_GCM_NONCE_SIZE, "big")


def _split_records(payload: bytes, options: EncryptionOptions) -> list[memoryview]:
    """
    Partition a payload into record-sized chunks.

    Every record but the last carries up to rs - 17 data bytes and is
    zero-filled to full size. Only a large final padding can leave the last
    non-final chunk short. The last record carries what remains plus the
    configured padding and must fit in rs.
    """
    data_per_record = options.rs - RECORD_OVERHEAD
    final_capacity = data_per_record - options.final_record_padding
    if final_capacity < 0:
        raise PayloadTooLargeError(
            f"final_record_padding does not fit in a record of {options.rs} bytes",
            field="final_record_padding",
            limit=data_per_record,
            actual=options.final_record_padding,
        )

    view = memoryview(payload)
    if len(payload) <= final_capacity:
        return [view]
    if not options.allow_multiple_records:
        raise PayloadTooLargeError(
            f"Payload too large for a single RFC8188 record: {len(payload)} bytes (maximum {final_capacity})",
            field="payload",
            limit=final_capacity,
            actual=len(payload),
        )

    full_records = -(-(len(payload) - final_capacity) // data_per_record)
    boundary = full_records * data_per_record
    chunks = [view[offset : offset + data_per_record] for offset in range(0, boundary, data_per_record)]
    chunks.append(view[boundary:])
    return chunks


def _unpad_record(plaintext: bytes, *, last: bool, index: int) -> bytes:
    """Strip padding and check the delimiter of one aes128gcm record."""
    stripped = plaintext.rstrip(b"\x00")
    if not stripped:
        raise DecryptionError(f"Record {index} has no delimiter", field="record", actual=index)
    expected = DELIMITER_FINAL if last else DELIMITER_NON_FINAL
    delimiter = stripped[-1]
    if delimiter != expected:
        raise DecryptionError(
            f"Record {index} has delimiter 0x{delimiter:02x}, expected 0x{expected:02x}",
            field="delimiter",
            limit=expected,
            actual=delimiter,
        )
    return stripped[:-1]


# =============================================================================
# aes128gcm
# =============================================================================


def encrypt_aes128gcm(
    payload: Payload,
    p256dh: str | bytes,
    auth: str | bytes,
    options: EncryptionOptions | None = None,
    *,
    salt: bytes | None = None,
    private_key: PrivateKeyInput = None,
) -> bytes:
    """
    Encrypt a payload with the aes128gcm content encoding.

    Args:
        payload: Message payload
        p256dh: Subscriber public key (base64url or raw 65 bytes)
        auth: Subscriber auth secret (base64url or raw, >= 16 bytes)
        options: Record framing options (rs, multi-record, padding)
        salt: Fixed 16-byte salt; random when omitted
        private_key: Fixed ephemeral private key; generated when omitted

    Returns:
        Complete body: header block followed by all records

    Raises:
        InvalidOptionError: If options select the aesgcm encoding
        InvalidKeyError: If a subscriber key is malformed
        PayloadTooLargeError: If the payload needs more records than allowed
        CryptoError: If a primitive fails
    """
    options = options or EncryptionOptions()
    options.validate()
    if options.content_encoding != ContentEncoding.AES_128_GCM:
        raise InvalidOptionError(
            "content_encoding aesgcm has no aes128gcm framing; use encrypt_aesgcm",
            field="content_encoding",
            actual=options.content_encoding.value,
        )
    data = normalize_payload(payload)
    ua_key = load_public_key(p256dh, field="p256dh")
    auth_secret = validate_auth_secret(auth)
    chunks = _split_records(data, options)

    ephemeral = _ephemeral_private_key(private_key)
    as_public = public_key_bytes(ephemeral.public_key())
    ua_public = public_key_bytes(ua_key)
    salt = _resolve_salt(salt)
    keys = derive_aes128gcm_keys(_exchange(ephemeral, ua_key), auth_secret, ua_public, as_public, salt)

    encryptor = RecordEncryptor(keys)
    last = len(chunks) - 1
    records = [encode_header(salt, options.rs, as_public)]
    for index, chunk in enumerate(chunks):
        if index == last:
            plaintext = bytes(chunk) + bytes([DELIMITER_FINAL]) + b"\x00" * options.final_record_padding
        else:
            filler = options.rs - RECORD_OVERHEAD - len(chunk)
            plaintext = bytes(chunk) + bytes([DELIMITER_NON_FINAL]) + b"\x00" * filler
        records.append(encryptor.encrypt(plaintext))

    body = b"".join(records)
    _logger.debug(
        "Payload encrypted: encoding=aes128gcm payload_size=%d records=%d rs=%d body_size=%d",
        len(data),
        len(chunks),
        options.rs,
        len(body),
    )
    return body


def decrypt_aes128gcm(body: bytes, private_key: str | bytes, auth: str | bytes) -> bytes:
    """
    Decrypt an aes128gcm body on the subscriber side.

    Args:
        body: Complete encoded body
        private_key: Subscriber private key (base64url or raw 32 bytes)
        auth: Subscriber auth secret

    Returns:
        Original payload

    Raises:
        DecryptionError: If the body is malformed, truncated or fails authentication
    """
    header = parse_header(body)
    header.validate()

    ua_private = load_private_key(private_key, field="private_key")
    ua_public = public_key_bytes(ua_private.public_key())
    as_key = load_public_key(header.keyid, field="keyid")
    auth_secret = validate_auth_secret(auth)
    keys = derive_aes128gcm_keys(_exchange(ua_private, as_key), auth_secret, ua_public, header.keyid, header.salt)

    records = memoryview(body)[header.size :]
    if len(records) == 0:
        raise DecryptionError("Body contains no records", field="body", actual=len(body))

    decryptor = RecordDecryptor(keys)
    chunks: list[bytes] = []
    for index, offset in enumerate(range(0, len(records), header.rs)):
        record = bytes(records[offset : offset + header.rs])
        if len(record) < RECORD_OVERHEAD:
            raise DecryptionError("Record too short", field="record", limit=RECORD_OVERHEAD, actual=len(record))
        last = offset + header.rs >= len(records)
        chunks.append(_unpad_record(decryptor.decrypt(record), last=last, index=index))
    return b"".join(chunks)


# =============================================================================
# aesgcm (legacy)
# =============================================================================


@dataclass(frozen=True)
class LegacyEncryptionResult:
    """Output of the aesgcm encoding; salt and key travel in headers."""

    ciphertext: bytes
    salt: bytes
    local_public_key: bytes

    @property
    def salt_b64url(self) -> str:
        return b64url_encode(self.salt)

    @property
    def local_public_key_b64url(self) -> str:
        return b64url_encode(self.local_public_key)

    @property
    def encryption_header(self) -> str:
        """Value of the Encryption header."""
        return f"salt={self.salt_b64url}"

    @property
    def crypto_key_header(self) -> str:
        """``dh`` parameter of the Crypto-Key header."""
        return f"dh={self.local_public_key_b64url}"


def encrypt_aesgcm(
    payload: Payload,
    p256dh: str | bytes,
    auth: str | bytes,
    *,
    salt: bytes | None = None,
    private_key: PrivateKeyInput = None,
) -> LegacyEncryptionResult:
    """
    Encrypt a payload with the legacy aesgcm content encoding.

    Produces a single record with no header block.

    Raises:
        InvalidKeyError: If a subscriber key is malformed
        PayloadTooLargeError: If the payload does not fit in one 4096-byte record
        CryptoError: If a primitive fails
    """
    data = normalize_payload(payload)
    ua_key = load_public_key(p256dh, field="p256dh")
    auth_secret = validate_auth_secret(auth)
    max_payload = LEGACY_RS - LEGACY_PAD_SIZE - 1
    if len(data) > max_payload:
        raise PayloadTooLargeError(
            f"Payload too large for a single aesgcm record: {len(data)} bytes (maximum {max_payload})",
            field="payload",
            limit=max_payload,
            actual=len(data),
        )

    ephemeral = _ephemeral_private_key(private_key)
    as_public = public_key_bytes(ephemeral.public_key())
    ua_public = public_key_bytes(ua_key)
    salt = _resolve_salt(salt)
    keys = derive_aesgcm_keys(_exchange(ephemeral, ua_key), auth_secret, ua_public, as_public, salt)

    ciphertext = RecordEncryptor(keys).encrypt(b"\x00" * LEGACY_PAD_SIZE + data)
    _logger.debug("Payload encrypted: encoding=aesgcm payload_size=%d body_size=%d", len(data), len(ciphertext))
    return LegacyEncryptionResult(ciphertext=ciphertext, salt=salt, local_public_key=as_public)


def decrypt_aesgcm(
    ciphertext: bytes,
    salt: str | bytes,
    dh: str | bytes,
    private_key: str | bytes,
    auth: str | bytes,
) -> bytes:
    """
    Decrypt an aesgcm body on the subscriber side.

    Args:
        ciphertext: Body bytes
        salt: Value of the Encryption header ``salt`` parameter
        dh: Value of the Crypto-Key header ``dh`` parameter
        private_key: Subscriber private key
        auth: Subscriber auth secret

    Returns:
        Original payload

    Raises:
        DecryptionError: If a record fails authentication or has bad padding
    """
    salt_bytes = b64url_decode(salt, field="salt") if isinstance(salt, str) else bytes(salt)
    if len(salt_bytes) != SALT_SIZE:
        raise DecryptionError("salt must be 16 bytes", field="salt", limit=SALT_SIZE, actual=len(salt_bytes))
    as_key = load_public_key(dh, field="dh")
    ua_private = load_private_key(private_key, field="private_key")
    auth_secret = validate_auth_secret(auth)
    keys = derive_aesgcm_keys(
        _exchange(ua_private, as_key),
        auth_secret,
        public_key_bytes(ua_private.public_key()),
        public_key_bytes(as_key),
        salt_bytes,
    )

    if len(ciphertext) < LEGACY_PAD_SIZE + AES_GCM_TAG_SIZE:
        raise DecryptionError(
            "Ciphertext too short", field="ciphertext", limit=LEGACY_PAD_SIZE + AES_GCM_TAG_SIZE, actual=len(ciphertext)
        )

    decryptor = RecordDecryptor(keys)
    record_size = LEGACY_RS + AES_GCM_TAG_SIZE
    chunks: list[bytes] = []
    for offset in range(0, len(ciphertext), record_size):
        plaintext = decryptor.decrypt(ciphertext[offset : offset + record_size])
        if len(plaintext) < LEGACY_PAD_SIZE:
            raise DecryptionError("Record too short for padding length", field="record", actual=len(plaintext))
        pad_length = int.from_bytes(plaintext[:LEGACY_PAD_SIZE], "big")
        data_start = LEGACY_PAD_SIZE + pad_length
        if data_start > len(plaintext) or any(plaintext[LEGACY_PAD_SIZE:data_start]):
            raise DecryptionError("Invalid record padding", field="padding", actual=pad_length)
        chunks.append(plaintext[data_start:])
    return b"".join(chunks)
