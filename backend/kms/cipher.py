"""
cipher.py — Encryption demo keyed by a BB84 shared key.

The key is the 256-character '0'/'1' string produced by the simulator.  Its
32 bytes key AES-256-GCM directly.

Ciphertext envelope (before hex / base64 encoding):
    fingerprint (4 bytes) || nonce (12 bytes) || ciphertext + tag

The fingerprint identifies the key so a decryption attempt with a different
key is reported as a key mismatch before AES is ever run; a failed tag check
after that means the ciphertext itself was altered.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from simulation.run_stats import TARGET_KEY_BITS

logger = logging.getLogger(__name__)

FINGERPRINT_LEN = 4
NONCE_LEN = 12
TAG_LEN = 16

_KEY_RE = re.compile(r"^[01]+$")

INVALID_KEY_MESSAGE = (
    f"Invalid key format. Key must be exactly {TARGET_KEY_BITS} bits "
    f"({TARGET_KEY_BITS} characters of 0s and 1s)"
)
KEY_MISMATCH_MESSAGE = (
    "Decryption failed: key mismatch. The key you entered does not match the encryption key."
)
CORRUPT_MESSAGE = "Decryption failed: corrupted or tampered ciphertext"


class CipherStatus(str, Enum):
    OK = "ok"
    MISSING_INPUT = "missing_input"
    INVALID_KEY = "invalid_key"
    KEY_MISMATCH = "key_mismatch"
    CORRUPT_CIPHERTEXT = "corrupt_ciphertext"


@dataclass
class EncryptionOutcome:
    status: CipherStatus
    ciphertext: str = ""
    format: str = "hex"
    error: str = ""

    @property
    def success(self) -> bool:
        return self.status is CipherStatus.OK


@dataclass
class DecryptionOutcome:
    status: CipherStatus
    plaintext: str = ""
    error: str = ""

    @property
    def success(self) -> bool:
        return self.status is CipherStatus.OK


# ------------------------------------------------------------------ #
#  Key handling                                                        #
# ------------------------------------------------------------------ #
def validate_key(key: str, key_bits: int = TARGET_KEY_BITS) -> bool:
    """True when *key* is exactly *key_bits* characters of 0s and 1s."""
    return len(key) == key_bits and bool(_KEY_RE.match(key))


def _bits_to_bytes(bits: List[int]) -> bytes:
    padded = bits + [0] * ((-len(bits)) % 8)
    ba = bytearray()
    for i in range(0, len(padded), 8):
        byte = 0
        for b in padded[i:i + 8]:
            byte = (byte << 1) | b
        ba.append(byte)
    return bytes(ba)


def key_to_bytes(key: str) -> bytes:
    return _bits_to_bytes([int(c) for c in key])


def key_fingerprint(key_bytes: bytes) -> bytes:
    return hashlib.sha256(b"bb84-key-check" + key_bytes).digest()[:FINGERPRINT_LEN]


def _encode(data: bytes, fmt: str) -> str:
    if fmt == "base64":
        return base64.b64encode(data).decode("ascii")
    return data.hex()


def _decode(text: str, fmt: str) -> bytes:
    if fmt == "base64":
        return base64.b64decode(text, validate=True)
    return bytes.fromhex(text)


# ------------------------------------------------------------------ #
#  Encrypt / decrypt                                                   #
# ------------------------------------------------------------------ #
def encrypt_message(message: str, key: str, fmt: str = "hex") -> EncryptionOutcome:
    """AES-256-GCM encrypts *message* with the bit-string *key*."""
    if not message:
        return EncryptionOutcome(CipherStatus.MISSING_INPUT, format=fmt,
                                 error="Please enter a message to encrypt")
    if not key:
        return EncryptionOutcome(CipherStatus.MISSING_INPUT, format=fmt,
                                 error=f"Please enter the {TARGET_KEY_BITS}-bit quantum key")
    if not validate_key(key):
        return EncryptionOutcome(CipherStatus.INVALID_KEY, format=fmt, error=INVALID_KEY_MESSAGE)

    key_bytes = key_to_bytes(key)
    nonce = os.urandom(NONCE_LEN)
    ct = AESGCM(key_bytes).encrypt(nonce, message.encode("utf-8"), None)
    envelope = key_fingerprint(key_bytes) + nonce + ct
    return EncryptionOutcome(CipherStatus.OK, ciphertext=_encode(envelope, fmt), format=fmt)


def decrypt_message(
    ciphertext: str,
    key: str,
    fmt: str = "hex",
    encryption_key: Optional[str] = None,
) -> DecryptionOutcome:
    """
    Decrypts *ciphertext* with the bit-string *key*.

    When *encryption_key* is given (the key typed on the encryption side),
    the two keys are compared first.  A mismatch is always reported as
    ``KEY_MISMATCH``, never as a wrong plaintext.
    """
    if not ciphertext:
        return DecryptionOutcome(CipherStatus.MISSING_INPUT,
                                 error="No encrypted message to decrypt")
    if not key:
        return DecryptionOutcome(CipherStatus.MISSING_INPUT,
                                 error=f"Please enter the {TARGET_KEY_BITS}-bit quantum key")
    if not validate_key(key):
        return DecryptionOutcome(CipherStatus.INVALID_KEY, error=INVALID_KEY_MESSAGE)
    if encryption_key is not None and encryption_key != key:
        return DecryptionOutcome(CipherStatus.KEY_MISMATCH, error=KEY_MISMATCH_MESSAGE)

    try:
        envelope = _decode(ciphertext.strip(), fmt)
    except (ValueError, binascii.Error):
        return DecryptionOutcome(CipherStatus.CORRUPT_CIPHERTEXT, error=CORRUPT_MESSAGE)
    if len(envelope) < FINGERPRINT_LEN + NONCE_LEN + TAG_LEN:
        return DecryptionOutcome(CipherStatus.CORRUPT_CIPHERTEXT, error=CORRUPT_MESSAGE)

    key_bytes = key_to_bytes(key)
    fingerprint = envelope[:FINGERPRINT_LEN]
    nonce = envelope[FINGERPRINT_LEN:FINGERPRINT_LEN + NONCE_LEN]
    ct = envelope[FINGERPRINT_LEN + NONCE_LEN:]

    if fingerprint != key_fingerprint(key_bytes):
        return DecryptionOutcome(CipherStatus.KEY_MISMATCH, error=KEY_MISMATCH_MESSAGE)

    try:
        plain_bytes = AESGCM(key_bytes).decrypt(nonce, ct, None)
    except InvalidTag:
        logger.warning("Ciphertext failed authentication with a matching key fingerprint")
        return DecryptionOutcome(CipherStatus.CORRUPT_CIPHERTEXT, error=CORRUPT_MESSAGE)

    try:
        plaintext = plain_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return DecryptionOutcome(CipherStatus.CORRUPT_CIPHERTEXT, error=CORRUPT_MESSAGE)
    return DecryptionOutcome(CipherStatus.OK, plaintext=plaintext)
