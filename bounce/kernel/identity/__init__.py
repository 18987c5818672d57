"""
Identity Core - authentication and user registration.
"""

from bounce.kernel.identity.password import PasswordHasher
from bounce.kernel.identity.identity_service import IdentityService, Principal

__all__ = [
    "PasswordHasher",
    "IdentityService",
    "Principal",
]
