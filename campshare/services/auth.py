import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from campshare.db.models import SessionDB, UserDB
from campshare.services.errors import Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _utcnow() -> datetime:
    # Session timestamps are stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AuthService:
    """Registration, credential checks and the server-side session store."""

    def __init__(self, db, session_max_age=60 * 60 * 24 * 7):
        self.db = db
        self.session_max_age = session_max_age

    def register(self, payload) -> UserDB:
        existing = (
            self.db.query(UserDB.id)
            .filter(or_(UserDB.username == payload.username, UserDB.email == str(payload.email)))
            .first()
        )
        if existing:
            raise ValidationFailed("Email or username already registered.")

        user = UserDB(
            username=payload.username,
            email=str(payload.email),
            password_hash=hash_password(payload.password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationFailed("Email or username already registered.")
        logger.info(f"Registered user {user.id} ({user.username})")
        return user

    def authenticate(self, username, password) -> UserDB:
        user = self.db.query(UserDB).filter(UserDB.username == username).first()
        if not user or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for '{username}'")
            raise Unauthorized("Invalid username or password.")
        return user

    def open_session(self, user) -> str:
        now = _utcnow()
        # Drop this user's stale sessions while we are here
        self.db.query(SessionDB).filter(
            SessionDB.user_id == user.id, SessionDB.expires_at <= now
        ).delete(synchronize_session=False)

        token = secrets.token_urlsafe(32)
        self.db.add(SessionDB(
            token=token,
            user_id=user.id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.session_max_age),
        ))
        self.db.commit()
        return token

    def resolve_session(self, token) -> Optional[UserDB]:
        session = self.db.query(SessionDB).filter(SessionDB.token == token).first()
        if not session:
            return None
        if session.expires_at <= _utcnow():
            self.db.delete(session)
            self.db.commit()
            return None
        return session.user

    def close_session(self, token):
        self.db.query(SessionDB).filter(SessionDB.token == token).delete(synchronize_session=False)
        self.db.commit()
