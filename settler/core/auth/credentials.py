from __future__ import annotations

import secrets
from typing import Protocol

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt


class CredentialVerifier(Protocol):
    def verify(self, supplied: str, stored: str) -> bool: ...


class PlaintextVerifier:
    """Exact equality against the stored secret. Placeholder for seeded/demo accounts."""

    def verify(self, supplied: str, stored: str) -> bool:
        return secrets.compare_digest((supplied or "").encode("utf-8"), (stored or "").encode("utf-8"))


def _scrypt(salt: bytes, n: int, r: int, p: int) -> Scrypt:
    return Scrypt(salt=salt, length=32, n=n, r=r, p=p)


class ScryptVerifier:
    """
    Salted scrypt hashes stored as `scrypt$n$r$p$salt_hex$digest_hex`.
    """

    prefix = "scrypt"

    def __init__(self, *, n: int = 2**14, r: int = 8, p: int = 1):
        self.n = int(n)
        self.r = int(r)
        self.p = int(p)

    def hash_secret(self, secret: str) -> str:
        salt = secrets.token_bytes(16)
        digest = _scrypt(salt, self.n, self.r, self.p).derive((secret or "").encode("utf-8"))
        return "$".join([self.prefix, str(self.n), str(self.r), str(self.p), salt.hex(), digest.hex()])

    def verify(self, supplied: str, stored: str) -> bool:
        parts = (stored or "").split("$")
        if len(parts) != 6 or parts[0] != self.prefix:
            return False
        try:
            kdf = _scrypt(bytes.fromhex(parts[4]), int(parts[1]), int(parts[2]), int(parts[3]))
            kdf.verify((supplied or "").encode("utf-8"), bytes.fromhex(parts[5]))
        except (ValueError, InvalidKey):
            return False
        return True
