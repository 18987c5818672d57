"""
Password hashing utilities using bcrypt.
"""

import bcrypt

# Default bcrypt cost; deployments override it with PASSWORD_HASH_ROUNDS
BCRYPT_ROUNDS = 12


class PasswordHasher:
    """Password hashing service."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        """
        Encode and truncate a password to 72 bytes.

        bcrypt only uses the first 72 bytes, and recent releases refuse
        longer input instead of ignoring the tail.
        """
        return password.encode("utf-8")[:72]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        A malformed stored hash counts as a mismatch.
        """
        try:
            return bcrypt.checkpw(self._encode(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """Check whether a stored hash was made with a different cost."""
        # Format: $2b$XX$... where XX is the cost
        parts = hashed_password.split("$")
        if len(parts) < 3 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds

