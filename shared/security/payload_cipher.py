import base64
import hashlib
import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken


logger = logging.getLogger(__name__)


class PayloadDecryptionError(Exception):
    """Raised when an encrypted payload can't be decrypted with the configured key."""


def derive_fernet_key(secret: str) -> bytes:
    """Turn an arbitrary secret into a valid Fernet key (urlsafe base64, 32 bytes)"""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


class FernetPayloadCipher:
    """Encrypts JSON payloads at rest with a key derived from the configured secret"""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption key must not be empty")
        self.fernet = Fernet(derive_fernet_key(secret))

    def encrypt(self, payload: Any) -> str:
        payload_json = json.dumps(payload, sort_keys=True)
        token = self.fernet.encrypt(payload_json.encode())
        return token.decode()

    def decrypt(self, token: str) -> Any:
        try:
            payload_json = self.fernet.decrypt(token.encode())
        except InvalidToken as e:
            logger.error("Error decrypting payload: invalid token or key")
            raise PayloadDecryptionError("Stored payload can't be decrypted") from e
        return json.loads(payload_json.decode())
