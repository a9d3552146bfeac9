"""Password hashing adapter backed by passlib's bcrypt scheme.

bcrypt is deliberately slow, so hashing and verification run in a worker
thread to keep the event loop responsive.
"""

import asyncio

import structlog
from passlib.context import CryptContext

from gatehouse.domain.interfaces.services import IPasswordHasher

logger = structlog.get_logger(__name__)


class BcryptPasswordHasher(IPasswordHasher):
    """Hashes and verifies passwords with bcrypt.

    Args:
        work_factor: bcrypt cost (log2 rounds).
    """

    def __init__(self, work_factor: int = 12):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=work_factor)

    async def hash(self, plain_password: str) -> str:
        if not plain_password:
            raise ValueError("Password cannot be empty")
        return await asyncio.to_thread(self.pwd_context.hash, plain_password)

    async def verify(self, plain_password: str, password_hash: str) -> bool:
        if not plain_password or not password_hash:
            return False
        try:
            return await asyncio.to_thread(self.pwd_context.verify, plain_password, password_hash)
        except ValueError as e:
            logger.warning("password_hash_unrecognized", error=str(e))
            return False
