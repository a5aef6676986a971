"""Bearer token validation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt


class AuthenticationError(Exception):
    """Raised when a bearer credential is missing, malformed or expired."""

    def __init__(self, message: str, *, missing: bool = False) -> None:
        super().__init__(message)
        self.missing = missing


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str
    role: str
    name: str
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role.upper() == "ADMIN"


class TokenAuthenticator:
    """Decodes HS256 tokens carrying ``userId``, ``role``, ``name`` and ``email`` claims."""

    def __init__(self, secret: str, *, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def authenticate(self, token: Optional[str]) -> Identity:
        if not token:
            raise AuthenticationError("Authentication token required", missing=True)
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Invalid authentication token") from exc
        user_id = claims.get("userId")
        if not user_id:
            raise AuthenticationError("Token is missing the userId claim")
        return Identity(
            user_id=str(user_id),
            role=str(claims.get("role", "USER")),
            name=str(claims.get("name", "")),
            email=claims.get("email"),
        )

    def issue_token(self, identity: Identity, *, expires_in: timedelta = timedelta(days=7)) -> str:
        """Sign a token for ``identity``. Used by tests and local tooling."""

        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "userId": identity.user_id,
            "role": identity.role,
            "name": identity.name,
            "iat": now,
            "exp": now + expires_in,
        }
        if identity.email:
            payload["email"] = identity.email
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the credential from an ``Authorization: Bearer ...`` header."""

    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()
