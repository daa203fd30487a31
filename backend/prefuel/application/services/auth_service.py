"""Application service for sign-in and bearer-token verification."""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from prefuel.domain.entities import Role, User
from prefuel.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Demo accounts. Passwords are plain text strictly for local use.
DEFAULT_USERS: tuple[User, ...] = (
    User(id="u1", name="Prefuel Admin", email="admin@prefuel", role=Role.ADMIN, password="Admin@12345"),
    User(id="u2", name="Prefuel Staff", email="staff@prefuel", role=Role.STAFF, password="Staff@12345"),
    User(id="u3", name="Green Tree HR", email="hr@prefuel", role=Role.HR, password="Hr@2025!"),
)


class AuthService:
    """Issues and verifies signed JWTs carrying the caller's id and role."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        expiry: timedelta = timedelta(days=7),
        users: tuple[User, ...] = DEFAULT_USERS,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expiry = expiry
        self._users = {user.email.lower(): user for user in users}

    def login(self, email: str, password: str) -> tuple[str, User]:
        user = self._users.get(email.strip().lower())
        if user is None or not hmac.compare_digest(
            user.password.encode("utf-8"), password.encode("utf-8")
        ):
            logger.info("Failed sign-in for %s", email)
            raise AuthenticationError("Invalid credentials")
        return self.issue_token(user), user

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "sub": user.id,
            "role": user.role.value,
            "name": user.name,
            "email": user.email,
            "iat": now,
            "exp": now + self._expiry,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> User:
        """Decode a bearer token back into the user it was issued for."""
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc

        try:
            role = Role(claims.get("role"))
        except ValueError as exc:
            raise AuthenticationError("Token carries an unknown role") from exc

        return User(
            id=str(claims.get("sub", "")),
            name=str(claims.get("name", "")),
            email=str(claims.get("email", "")),
            role=role,
        )
