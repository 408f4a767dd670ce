"""
AnnotationStore - ratings and comments keyed by (user, item).

Every mutating call takes the caller's user id as an explicit argument;
the HTTP layer only ever passes the id from a verified token.
"""
import logging
from typing import List, Tuple

from core.entities import Comment, Rating, RatingEntry, RatingSummary
from core.errors import InvalidArgument, NotFoundOrForbidden
from services.database import Database, utcnow_iso
from services.users import UserDirectory

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _require_item_id(item_id: str) -> str:
    if not isinstance(item_id, str) or not item_id.strip():
        raise InvalidArgument("Item id required")
    return item_id.strip()


def _require_text(text: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise InvalidArgument("Comment text required")
    return text.strip()


class AnnotationStore:
    """
    Access contract for Rating and Comment rows.
    Usernames are resolved through the UserDirectory, not joined in SQL.
    """

    def __init__(self, database: Database, users: UserDirectory):
        self.db = database
        self.users = users

    # ==================== Ratings ====================

    async def rate(self, user_id: int, item_id: str, value: int) -> Tuple[Rating, bool]:
        """
        Create or update the caller's rating of an item.

        Returns:
            Tuple of (rating, created)
            created is False when an existing rating was overwritten
        """
        item_id = _require_item_id(item_id)
        if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
            raise InvalidArgument(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")

        now = utcnow_iso()
        async with self.db.connect() as conn:
            # Unique (user_id, item_id) index makes this a single-row upsert;
            # revision 0 means this statement inserted the row
            cursor = await conn.execute(
                """INSERT INTO ratings (user_id, item_id, value, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(user_id, item_id)
                   DO UPDATE SET value = excluded.value,
                                 updated_at = excluded.updated_at,
                                 revision = ratings.revision + 1
                   RETURNING revision""",
                (user_id, item_id, value, now, now)
            )
            row = await cursor.fetchone()
            await conn.commit()

        created = row["revision"] == 0
        logger.debug(f"User {user_id} rated {item_id}: {value} (created={created})")
        return Rating(user_id=user_id, item_id=item_id, value=value), created

    async def unrate(self, user_id: int, item_id: str) -> None:
        """Delete the caller's rating. A missing rating is not an error."""
        item_id = _require_item_id(item_id)
        async with self.db.connect() as conn:
            await conn.execute(
                "DELETE FROM ratings WHERE user_id = ? AND item_id = ?",
                (user_id, item_id)
            )
            await conn.commit()

    async def delete_rating(self, requester_id: int, item_id: str) -> None:
        """Scoped to the requester's own row; same as unrate."""
        await self.unrate(requester_id, item_id)

    async def list_ratings(self, item_id: str) -> List[RatingEntry]:
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "SELECT user_id, value FROM ratings WHERE item_id = ? ORDER BY id",
                (item_id,)
            )
            rows = await cursor.fetchall()

        names = await self.users.resolve_usernames(row['user_id'] for row in rows)
        return [
            RatingEntry(user_id=row['user_id'], username=names[row['user_id']], value=row['value'])
            for row in rows
        ]

    async def summarize(self, item_id: str) -> RatingSummary:
        ratings = await self.list_ratings(item_id)
        return RatingSummary.from_values(r.value for r in ratings)

    # ==================== Comments ====================

    async def add_comment(self, user_id: int, item_id: str, text: str) -> Comment:
        item_id = _require_item_id(item_id)
        text = _require_text(text)
        now = utcnow_iso()

        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "INSERT INTO comments (user_id, item_id, text, created_at) VALUES (?, ?, ?, ?)",
                (user_id, item_id, text, now)
            )
            await conn.commit()
            comment_id = cursor.lastrowid

        username = await self.users.resolve_username(user_id)
        return Comment(
            id=comment_id,
            user_id=user_id,
            username=username,
            item_id=item_id,
            text=text,
            created_at=now,
        )

    async def list_comments(self, item_id: str) -> List[Comment]:
        """Comments for an item, oldest first. Edits never reorder."""
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                """SELECT id, user_id, item_id, text, created_at, updated_at
                   FROM comments WHERE item_id = ?
                   ORDER BY created_at ASC, id ASC""",
                (item_id,)
            )
            rows = await cursor.fetchall()

        names = await self.users.resolve_usernames(row['user_id'] for row in rows)
        return [self._to_comment(row, names[row['user_id']]) for row in rows]

    async def update_comment(self, requester_id: int, comment_id: int, text: str) -> Comment:
        """
        Replace the text of the requester's own comment.
        Missing and not-owned comments raise the same NotFoundOrForbidden.
        """
        text = _require_text(text)
        now = utcnow_iso()

        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "UPDATE comments SET text = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                (text, now, comment_id, requester_id)
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise NotFoundOrForbidden("Comment not found or unauthorized")

            cursor = await conn.execute(
                """SELECT id, user_id, item_id, text, created_at, updated_at
                   FROM comments WHERE id = ?""",
                (comment_id,)
            )
            row = await cursor.fetchone()

        # Deleted between the update and the read
        if row is None:
            raise NotFoundOrForbidden("Comment not found or unauthorized")

        username = await self.users.resolve_username(requester_id)
        return self._to_comment(row, username)

    async def delete_comment(self, requester_id: int, comment_id: int) -> None:
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "DELETE FROM comments WHERE id = ? AND user_id = ?",
                (comment_id, requester_id)
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise NotFoundOrForbidden("Comment not found or unauthorized")

    @staticmethod
    def _to_comment(row, username: str) -> Comment:
        return Comment(
            id=row['id'],
            user_id=row['user_id'],
            username=username,
            item_id=row['item_id'],
            text=row['text'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )
