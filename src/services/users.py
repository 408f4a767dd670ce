"""
User directory: registration, password checks and username resolution.
"""
import aiosqlite
from typing import Dict, Iterable, Optional, Any
import hashlib
import secrets
import logging

from core.entities import Identity
from core.errors import Conflict, InvalidArgument, Unauthenticated
from services.database import Database

logger = logging.getLogger(__name__)

DELETED_USERNAME = "[deleted]"


class UserDirectory:
    """Async user management on top of the shared Database."""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using SHA-256 with salt."""
        salt = secrets.token_hex(16)
        pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
        return f"{salt}${pwd_hash}"

    @staticmethod
    def verify_password(password: str, stored_hash: str) -> bool:
        """Verify a password against its hash."""
        try:
            salt, pwd_hash = stored_hash.split('$')
        except ValueError:
            return False
        candidate = hashlib.sha256((password + salt).encode()).hexdigest()
        return secrets.compare_digest(candidate, pwd_hash)

    async def create_user(self, username: str, password: str) -> Optional[int]:
        """Insert a user row. Returns None when the username is taken."""
        password_hash = self.hash_password(password)
        async with self.db.connect() as conn:
            try:
                cursor = await conn.execute(
                    "INSERT INTO users (username, password_hash) VALUES (?, ?)",
                    (username, password_hash)
                )
                await conn.commit()
                return cursor.lastrowid
            except aiosqlite.IntegrityError:
                return None

    async def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "SELECT * FROM users WHERE username = ?", (username,)
            )
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def register(self, username: str, password: str) -> Identity:
        """Create an account; a duplicate username raises Conflict."""
        username = (username or "").strip()
        if not username or not password:
            raise InvalidArgument("Username and password required")

        user_id = await self.create_user(username, password)
        if user_id is None:
            raise Conflict("Username already taken")

        logger.info(f"Registered user {username} (id={user_id})")
        return Identity(user_id=user_id, username=username)

    async def authenticate(self, username: str, password: str) -> Identity:
        username = (username or "").strip()
        if not username or not password:
            raise InvalidArgument("Username and password required")

        user = await self.get_user_by_username(username)
        # Same error for unknown user and wrong password
        if not user or not self.verify_password(password, user['password_hash']):
            raise Unauthenticated("Invalid username or password")

        return Identity(user_id=user['id'], username=user['username'])

    async def resolve_usernames(self, user_ids: Iterable[int]) -> Dict[int, str]:
        """
        Map user ids to usernames in one query.
        Ids with no user row resolve to DELETED_USERNAME.
        """
        ids = sorted(set(user_ids))
        if not ids:
            return {}

        placeholders = ", ".join("?" for _ in ids)
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                f"SELECT id, username FROM users WHERE id IN ({placeholders})",
                tuple(ids)
            )
            rows = await cursor.fetchall()

        names = {row['id']: row['username'] for row in rows}
        return {uid: names.get(uid, DELETED_USERNAME) for uid in ids}

    async def resolve_username(self, user_id: int) -> str:
        names = await self.resolve_usernames([user_id])
        return names[user_id]
