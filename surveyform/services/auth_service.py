from __future__ import annotations

import itertools
import logging
import re
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from surveyform.models.errors import AuthenticationError, RegistrationError
from surveyform.models.survey import utcnow
from surveyform.services.mongo_client import store_errors
from surveyform.services.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class CredentialStore(Protocol):
    """Lookup and creation of user records keyed by email."""

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]: ...

    def insert(self, document: Mapping[str, Any]) -> str: ...


class MongoCredentialStore(CredentialStore):

    def __init__(self, users: Any) -> None:
        self._users = users

    @classmethod
    def from_database(cls, database: Any) -> "MongoCredentialStore":
        return cls(database[USERS_COLLECTION])

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with store_errors("find_user"):
            return self._users.find_one({"email": email})

    def insert(self, document: Mapping[str, Any]) -> str:
        with store_errors("create_user"):
            result = self._users.insert_one(dict(document))
        return str(result.inserted_id)


class InMemoryCredentialStore(CredentialStore):

    def __init__(self) -> None:
        self._users: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            user = self._users.get(email)
            return dict(user) if user else None

    def insert(self, document: Mapping[str, Any]) -> str:
        with self._lock:
            user_id = f"user-{next(self._ids)}"
            self._users[document["email"]] = {**document, "_id": user_id}
        return user_id


@dataclass(frozen=True)
class Session:
    token: str
    user_id: str
    email: str
    name: str
    expires_at: datetime


class SessionStore:
    """Server-side registry of issued session tokens."""

    def __init__(self, ttl_seconds: int, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def issue(self, user: Mapping[str, Any]) -> Session:
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=str(user["_id"]),
            email=str(user["email"]),
            name=str(user.get("name") or ""),
            expires_at=self._clock() + self._ttl,
        )
        with self._lock:
            now = self._clock()
            expired = [token for token, live in self._sessions.items() if live.expires_at <= now]
            for token in expired:
                del self._sessions[token]
            self._sessions[session.token] = session
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def require(self, token: Optional[str]) -> Session:
        """Return the live session for ``token`` or raise ``AuthenticationError``."""

        if not token:
            raise AuthenticationError("Login required")
        with self._lock:
            session = self._sessions.get(token)
            if session is not None and session.expires_at <= self._clock():
                del self._sessions[token]
                session = None
        if session is None:
            raise AuthenticationError("Session expired or invalid")
        return session

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)


class AuthService:
    """Registration, login and session checks."""

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        *,
        password_min_length: int = 6,
    ) -> None:
        self._credentials = credentials
        self._sessions = sessions
        self._password_min_length = password_min_length

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> str:
        clean_name = (name or "").strip()
        clean_email = _normalize_email(email)
        if not clean_name or not clean_email or not password:
            raise RegistrationError("Name, email, and password are required")
        if not EMAIL_PATTERN.match(clean_email):
            raise RegistrationError("Please enter a valid email address")
        if len(password) < self._password_min_length:
            raise RegistrationError(
                f"Password must be at least {self._password_min_length} characters long"
            )
        if self._credentials.find_by_email(clean_email) is not None:
            raise RegistrationError("User with this email already exists")

        user_id = self._credentials.insert(
            {
                "name": clean_name,
                "email": clean_email,
                "password": hash_password(password),
                "createdAt": utcnow(),
                "isActive": True,
            }
        )
        logger.info("Registered user %s", user_id)
        return user_id

    def verify_credentials(self, email: Optional[str], password: Optional[str]) -> Optional[Dict[str, Any]]:
        clean_email = _normalize_email(email)
        if not clean_email or not password:
            return None
        user = self._credentials.find_by_email(clean_email)
        if user is None or not verify_password(password, str(user.get("password", ""))):
            return None
        return user

    def login(self, email: Optional[str], password: Optional[str]) -> Session:
        if not _normalize_email(email) or not password:
            raise AuthenticationError("Email and password are required")
        user = self.verify_credentials(email, password)
        if user is None:
            logger.info("Rejected login attempt")
            raise AuthenticationError("Invalid email or password")
        session = self._sessions.issue(user)
        logger.info("User %s logged in", session.user_id)
        return session

    def require_session(self, token: Optional[str]) -> Session:
        return self._sessions.require(token)

    def logout(self, token: Optional[str]) -> None:
        self._sessions.revoke(token)


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


__all__ = [
    "AuthService",
    "CredentialStore",
    "InMemoryCredentialStore",
    "MongoCredentialStore",
    "Session",
    "SessionStore",
]
