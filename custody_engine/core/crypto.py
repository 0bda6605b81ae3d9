"""Key vault: custodial keypair generation and private key encryption at rest.

Every other module receives key material only as :class:`EncryptedKeyMaterial`
and asks the vault for a short-lived signing account via :meth:`KeyVault.unlocked`.
"""

from __future__ import annotations

import base64
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from eth_account import Account
from eth_account.signers.local import LocalAccount

from custody_engine.core.config import VaultSettings

ALGORITHM_TAG = "fernet-pbkdf2-sha256/v1"
PRIVATE_KEY_BYTES = 32


class KeyVaultError(Exception):
    """Base class for key vault errors."""


class KeyGenerationError(KeyVaultError):
    """Raised when the entropy source cannot produce a new keypair."""


class DecryptionError(KeyVaultError):
    """Raised when key material cannot be decrypted with the configured secret."""


@dataclass(frozen=True, slots=True)
class EncryptedKeyMaterial:
    ciphertext: str = field(repr=False)
    algorithm: str = ALGORITHM_TAG


@dataclass(frozen=True, slots=True)
class GeneratedWallet:
    address: str
    encrypted_key: EncryptedKeyMaterial


def derive_fernet_key(secret: str, salt: str, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


def _normalize_private_key(private_key: bytes | str) -> bytes:
    if isinstance(private_key, str):
        value = private_key.strip()
        if value.startswith(("0x", "0X")):
            value = value[2:]
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ValueError("private key must be hex encoded") from None
    else:
        raw = bytes(private_key)
    if len(raw) != PRIVATE_KEY_BYTES:
        raise ValueError("private key must be 32 bytes")
    return raw


class KeyVault:
    """Encrypts and decrypts custodial private keys with one application-wide key."""

    def __init__(self, secret: str, *, salt: str, iterations: int) -> None:
        self._fernet = Fernet(derive_fernet_key(secret, salt, iterations))

    @classmethod
    def from_settings(cls, settings: VaultSettings) -> "KeyVault":
        return cls(
            settings.encryption_secret,
            salt=settings.kdf_salt,
            iterations=settings.kdf_iterations,
        )

    def generate_wallet(self) -> GeneratedWallet:
        try:
            account = Account.create()
        except (OSError, NotImplementedError) as exc:
            raise KeyGenerationError("entropy source unavailable") from exc
        return GeneratedWallet(address=account.address, encrypted_key=self.encrypt(account.key))

    def encrypt(self, private_key: bytes | str) -> EncryptedKeyMaterial:
        token = self._fernet.encrypt(_normalize_private_key(private_key))
        return EncryptedKeyMaterial(ciphertext=token.decode("ascii"))

    def decrypt(self, material: EncryptedKeyMaterial) -> str:
        """Return the ``0x``-prefixed private key or raise :class:`DecryptionError`."""
        if material.algorithm != ALGORITHM_TAG:
            raise DecryptionError(f"unsupported key material algorithm: {material.algorithm}")
        try:
            raw = self._fernet.decrypt(material.ciphertext.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError, TypeError, ValueError):
            # No chained cause: nothing derived from the ciphertext may reach logs.
            raise DecryptionError("key material could not be decrypted with the configured secret") from None
        if len(raw) != PRIVATE_KEY_BYTES:
            raise DecryptionError("decrypted key material has an invalid length")
        return "0x" + raw.hex()

    @contextmanager
    def unlocked(self, material: EncryptedKeyMaterial) -> Iterator[LocalAccount]:
        """Yield a signing account for the duration of the ``with`` block only."""
        account = Account.from_key(self.decrypt(material))
        try:
            yield account
        finally:
            del account


__all__ = [
    "ALGORITHM_TAG",
    "DecryptionError",
    "EncryptedKeyMaterial",
    "GeneratedWallet",
    "KeyGenerationError",
    "KeyVault",
    "KeyVaultError",
    "derive_fernet_key",
]
