"""
Data protection for sensitive fields: AEAD encryption and lookup hashing.

Every cryptographic operation on stored card data goes through DataCodec so
it is easy to audit. Two concerns are handled here:

1. ENCRYPTION (AES-256-GCM)
   - Recoverable storage for PANs, IPINs and recipient cards
   - A fresh 12-byte random nonce per value; the GCM tag authenticates it
   - Output is self-describing: "enc:<base64 nonce>:<base64 ciphertext+tag>"

2. LOOKUP HASHING (HMAC-SHA256)
   - Deterministic surrogate stored in the searchable column
   - Equal plaintexts give equal hashes, so "WHERE pan = :hash" works
   - Output is self-describing: "h:<hex digest>"

Both keys are derived from one operator-supplied secret with different
labels, so the encryption key and the MAC key are independent.

Base64 is written without "=" padding. Rows encrypted by earlier noebs
deployments use the same format and stay readable.

An empty secret builds an inert codec: encrypt, decrypt and hash return their
input unchanged. This is the "encryption disabled" operating mode.
"""

import base64
import binascii
import hashlib
import hmac
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from noebs.exceptions import CryptoError


ENC_PREFIX = "enc:"
HASH_PREFIX = "h:"

NONCE_SIZE = 12


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.b64decode(padded, validate=True)


class DataCodec:
    """
    Encrypts and hashes short strings (PAN-length data).

    Instances hold only derived key material and are immutable after
    construction, so one codec can be shared by every concurrent request.
    """

    def __init__(self, data_key: str = ""):
        if not data_key:
            self._aead = None
            self._mac_key = None
            return
        enc_key = hashlib.sha256(("enc:" + data_key).encode("utf-8")).digest()
        self._mac_key = hashlib.sha256(("mac:" + data_key).encode("utf-8")).digest()
        self._aead = AESGCM(enc_key)

    @property
    def enabled(self) -> bool:
        """False when the codec was built without a data key."""
        return self._aead is not None

    def encrypt(self, value: str) -> str:
        """
        Encrypt `value` into an "enc:" envelope.

        Empty values and values that are already envelopes are returned
        unchanged, so sealing a record twice never double-encrypts.

        Raises:
            CryptoError: If the operating system cannot supply a nonce.
        """
        if self._aead is None or not value or value.startswith(ENC_PREFIX):
            return value
        try:
            nonce = os.urandom(NONCE_SIZE)
        except (OSError, NotImplementedError) as exc:
            raise CryptoError("No randomness available for encryption") from exc
        sealed = self._aead.encrypt(nonce, value.encode("utf-8"), None)
        return ENC_PREFIX + _b64encode(nonce) + ":" + _b64encode(sealed)

    def decrypt(self, value: str) -> str:
        """
        Recover the plaintext from an "enc:" envelope.

        Values without the prefix are not ciphertext and pass through.

        Raises:
            CryptoError: If the envelope is malformed or fails authentication
                (wrong key, truncated or tampered data).
        """
        if self._aead is None or not value or not value.startswith(ENC_PREFIX):
            return value
        nonce_text, sep, sealed_text = value[len(ENC_PREFIX):].partition(":")
        if not sep:
            raise CryptoError("Invalid encrypted payload")
        try:
            nonce = _b64decode(nonce_text)
            sealed = _b64decode(sealed_text)
        except (binascii.Error, ValueError) as exc:
            raise CryptoError("Invalid encrypted payload encoding") from exc
        try:
            plain = self._aead.decrypt(nonce, sealed, None)
        except (InvalidTag, ValueError) as exc:
            raise CryptoError("Encrypted payload failed authentication") from exc
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CryptoError("Decrypted payload is not valid text") from exc

    def hash(self, value: str) -> str:
        """
        Deterministic keyed hash of `value` ("h:<hex>").

        Used as the equality-searchable stand-in for the plaintext. Values
        that already carry the "h:" prefix are returned unchanged.
        """
        if self._mac_key is None or not value or value.startswith(HASH_PREFIX):
            return value
        digest = hmac.new(self._mac_key, value.encode("utf-8"), hashlib.sha256).hexdigest()
        return HASH_PREFIX + digest

    @staticmethod
    def is_hash(value: str | None) -> bool:
        return bool(value) and value.startswith(HASH_PREFIX)

    @staticmethod
    def is_encrypted(value: str | None) -> bool:
        return bool(value) and value.startswith(ENC_PREFIX)
