"""
Signed bearer tokens carrying {userId, username}.
"""
import logging
from datetime import timedelta
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from core.entities import Identity
from core.errors import Unauthenticated

logger = logging.getLogger(__name__)


class TokenService:
    """Issues and verifies time-limited signed tokens."""

    SALT = "auth-token"

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=24)):
        self.ttl = ttl
        self._serializer = URLSafeTimedSerializer(secret, salt=self.SALT)

    def issue(self, identity: Identity) -> str:
        return self._serializer.dumps({
            "userId": identity.user_id,
            "username": identity.username,
        })

    def verify(self, token: Optional[str]) -> Identity:
        """Return the identity in a token or raise Unauthenticated."""
        if not token:
            raise Unauthenticated("Missing token")

        try:
            payload = self._serializer.loads(token, max_age=self.ttl.total_seconds())
        except SignatureExpired:
            raise Unauthenticated("Token expired")
        except BadSignature:
            logger.debug("Rejected token with bad signature")
            raise Unauthenticated("Invalid token")

        try:
            return Identity(user_id=int(payload["userId"]), username=str(payload["username"]))
        except (KeyError, TypeError, ValueError):
            raise Unauthenticated("Invalid token")
