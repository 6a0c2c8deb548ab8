import unittest

from backend.kms.cipher import (
    FINGERPRINT_LEN,
    NONCE_LEN,
    CipherStatus,
    decrypt_message,
    encrypt_message,
    key_to_bytes,
    validate_key,
)
from simulation.bb84 import BB84Run
from simulation.random_source import RandomSource

KEY = ("0110" * 64)


def _flip(key: str, position: int) -> str:
    flipped = '1' if key[position] == '0' else '0'
    return key[:position] + flipped + key[position + 1:]


class TestKeyValidation(unittest.TestCase):
    def test_valid_key(self):
        self.assertTrue(validate_key(KEY))
        self.assertEqual(len(key_to_bytes(KEY)), 32)
        self.assertEqual(key_to_bytes("1" * 256), b"\xff" * 32)

    def test_invalid_keys(self):
        self.assertFalse(validate_key(KEY[:-1]))
        self.assertFalse(validate_key(KEY + "0"))
        self.assertFalse(validate_key("2" + KEY[1:]))
        self.assertFalse(validate_key(""))


class TestEncryptDecrypt(unittest.TestCase):
    def test_round_trip_with_simulated_key(self):
        key = BB84Run(max_photons=1024, source=RandomSource(seed=77)).run_to_completion().key
        self.assertTrue(validate_key(key))

        encrypted = encrypt_message("Meet at the photon detector", key)
        self.assertTrue(encrypted.success)
        decrypted = decrypt_message(encrypted.ciphertext, key)
        self.assertTrue(decrypted.success)
        self.assertEqual(decrypted.plaintext, "Meet at the photon detector")

    def test_base64_format(self):
        encrypted = encrypt_message("hello", KEY, fmt="base64")
        self.assertEqual(encrypted.format, "base64")
        self.assertEqual(decrypt_message(encrypted.ciphertext, KEY, fmt="base64").plaintext, "hello")

    def test_one_bit_difference_is_a_key_mismatch(self):
        encrypted = encrypt_message("secret", KEY)
        other = _flip(KEY, 100)

        outcome = decrypt_message(encrypted.ciphertext, other)
        self.assertFalse(outcome.success)
        self.assertIs(outcome.status, CipherStatus.KEY_MISMATCH)
        self.assertEqual(outcome.plaintext, "")

        outcome = decrypt_message(encrypted.ciphertext, other, encryption_key=KEY)
        self.assertIs(outcome.status, CipherStatus.KEY_MISMATCH)

    def test_explicit_key_comparison_runs_first(self):
        encrypted = encrypt_message("secret", KEY)
        outcome = decrypt_message(encrypted.ciphertext, KEY, encryption_key=_flip(KEY, 0))
        self.assertIs(outcome.status, CipherStatus.KEY_MISMATCH)

    def test_tampered_ciphertext_is_corrupt_not_mismatch(self):
        encrypted = encrypt_message("secret", KEY)
        raw = bytearray(bytes.fromhex(encrypted.ciphertext))
        raw[FINGERPRINT_LEN + NONCE_LEN] ^= 0x01
        outcome = decrypt_message(bytes(raw).hex(), KEY)
        self.assertIs(outcome.status, CipherStatus.CORRUPT_CIPHERTEXT)

    def test_malformed_ciphertext(self):
        self.assertIs(decrypt_message("not-hex", KEY).status, CipherStatus.CORRUPT_CIPHERTEXT)
        self.assertIs(decrypt_message("abcd", KEY).status, CipherStatus.CORRUPT_CIPHERTEXT)

    def test_incomplete_key_is_rejected(self):
        outcome = encrypt_message("secret", KEY[:200])
        self.assertIs(outcome.status, CipherStatus.INVALID_KEY)
        self.assertIn("256", outcome.error)

    def test_missing_inputs(self):
        self.assertIs(encrypt_message("", KEY).status, CipherStatus.MISSING_INPUT)
        self.assertIs(encrypt_message("x", "").status, CipherStatus.MISSING_INPUT)
        self.assertIs(decrypt_message("", KEY).status, CipherStatus.MISSING_INPUT)
        self.assertIs(decrypt_message("00", "").status, CipherStatus.MISSING_INPUT)

    def test_fresh_nonce_per_message(self):
        a = encrypt_message("same", KEY).ciphertext
        b = encrypt_message("same", KEY).ciphertext
        self.assertNotEqual(a, b)


if __name__ == '__main__':
    unittest.main()
