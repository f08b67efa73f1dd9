# pollboard/encryption/password_hashing.py

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError, HashingError

# Password hashing and verification using Argon2id.
# PasswordHasher.verify compares digests in constant time.


class PasswordHashingService:
    def __init__(self, time_cost=3, memory_cost=65536, parallelism=4):
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )

    @classmethod
    def from_config(cls, config):
        return cls(
            time_cost=config['ARGON2_TIME_COST'],
            memory_cost=config['ARGON2_MEMORY_COST'],
            parallelism=config['ARGON2_PARALLELISM'],
        )

    def hash_password(self, password: str) -> str:
        if not isinstance(password, str) or not password:
            raise ValueError("Password must be a non-empty string")
        try:
            return self.ph.hash(password)
        except HashingError as e:
            raise ValueError(f"Password hashing failed: {str(e)}")

    def verify_password(self, password: str, hash_value: str) -> bool:
        if not isinstance(password, str) or not isinstance(hash_value, str):
            return False
        try:
            return self.ph.verify(hash_value, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hash_value: str) -> bool:
        return self.ph.check_needs_rehash(hash_value)
