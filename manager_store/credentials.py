import logging
from typing import Dict, Optional

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from .errors import DuplicateUsername, InvalidCredentials
from .models import User
from .validation import RegisterPayload, validate_payload

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class CredentialStore:
    """
    In-memory user registry with bcrypt password hashing.

    Hashing and verification run in the threadpool so they suspend the
    calling coroutine instead of blocking the event loop; they never touch
    the registry itself.
    """

    def __init__(self, bcrypt_rounds: int = 12):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=bcrypt_rounds
        )
        self._users: Dict[int, User] = {}
        self._by_username: Dict[str, int] = {}
        self._next_id = 1

    def get(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        user_id = self._by_username.get(username)
        return self._users.get(user_id) if user_id is not None else None

    def __len__(self):
        return len(self._users)

    async def get_password_hash(self, password: str) -> str:
        return await run_in_threadpool(self.pwd_context.hash, password)

    async def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        if hashed_password is None:
            # Unknown user: burn the same time as a real verify.
            await run_in_threadpool(self.pwd_context.dummy_verify)
            return False
        return await run_in_threadpool(self.pwd_context.verify, plain_password, hashed_password)

    async def register(self, username, password) -> User:
        """
        Register a new user.
        Raises ValidationError for a bad username/password and
        DuplicateUsername if the name is taken.
        """
        data = validate_payload(RegisterPayload, {"username": username, "password": password})
        if data.username in self._by_username:
            raise DuplicateUsername()
        password_hash = await self.get_password_hash(data.password)
        # Another registration may have claimed the name while hashing.
        if data.username in self._by_username:
            raise DuplicateUsername()
        user = User(id=self._next_id, username=data.username, password_hash=password_hash)
        self._next_id += 1
        self._users[user.id] = user
        self._by_username[user.username] = user.id
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    async def login(self, username, password) -> User:
        """
        Return the user whose credentials match.
        Raises InvalidCredentials without saying which part was wrong.
        """
        if not isinstance(username, str) or not isinstance(password, str):
            raise InvalidCredentials()
        user = self.get_by_username(username)
        valid = await self.verify_password(password, user.password_hash if user else None)
        if not user or not valid:
            logger.info("Failed login attempt for username %r", username)
            raise InvalidCredentials()
        return user
