"""Password hashing primitive (Argon2id)."""

from typing import Protocol

from argon2 import PasswordHasher as _Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str: ...

    def compare(self, plaintext: str, digest: str) -> bool: ...


class Argon2PasswordHasher:
    """Argon2id with explicit cost parameters.

    Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
    """

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ):
        self._ph = _Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )

    def hash(self, plaintext: str) -> str:
        return self._ph.hash(plaintext)

    def compare(self, plaintext: str, digest: str) -> bool:
        """Constant-time check of ``plaintext`` against ``digest``."""
        try:
            return self._ph.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False
