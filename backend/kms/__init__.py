from .cipher import (
    CipherStatus,
    DecryptionOutcome,
    EncryptionOutcome,
    decrypt_message,
    encrypt_message,
    validate_key,
)
