"""JWT-backed session provider.

Validates a signed session token carried either as a Bearer token in the
``Authorization`` header or in the session cookie (default
``hive_session``), and turns its claims into a
:class:`~hive_tenancy.core.types.Session`.

Example JWT payload::

    {
        "sub": "user-abc",
        "email": "ada@example.com",
        "name": "Ada",
        "sid": "sess-42",
        "exp": 1893456000
    }

Security notes
--------------
* Validation failures raise.  The session resolver converts every failure
  into an anonymous result, so nothing about the token reaches the client.
  The reason is logged at ``WARNING`` for operators.
* Tokens are verified with the configured ``secret`` and ``algorithm`` only;
  the algorithm in the token header is never trusted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime

from jose import JWTError, jwt as _jose_jwt
from starlette.requests import cookie_parser

from hive_tenancy.core.types import Session, User

logger = logging.getLogger(__name__)

_RESERVED_CLAIMS = frozenset(
    {"id", "sub", "email", "name", "sid", "exp", "iat", "nbf", "iss", "aud"}
)


class JWTSessionProvider:
    """Session provider verifying HS/RS-signed JWT session tokens.

    Args:
        secret: Signing secret (HS256) or public key (RS256 / EC).
        algorithm: JWT signing algorithm.  Defaults to ``"HS256"``.
        cookie_name: Cookie read when no Bearer token is present.

    Raises:
        ValueError: When ``secret`` is empty or shorter than 32 characters.

    Example::

        provider = JWTSessionProvider(secret=os.environ["HIVE_JWT_SECRET"])
        session = await provider.get_session({"authorization": "Bearer eyJ..."})
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        cookie_name: str = "hive_session",
    ) -> None:
        if not secret:
            raise ValueError("JWTSessionProvider requires a non-empty JWT secret.")
        if len(secret) < 32:
            raise ValueError(
                "JWT secret must be at least 32 characters long for adequate security."
            )
        self._secret = secret
        self._algorithm = algorithm
        self._cookie_name = cookie_name
        logger.debug("JWTSessionProvider algorithm=%r cookie=%r", algorithm, cookie_name)

    def _extract_token(self, headers: Mapping[str, str]) -> str | None:
        auth_header = headers.get("authorization", "")
        if auth_header:
            parts = auth_header.split(maxsplit=1)
            if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
                return parts[1].strip()

        cookie_header = headers.get("cookie", "")
        if cookie_header:
            token = cookie_parser(cookie_header).get(self._cookie_name, "").strip()
            if token:
                return token
        return None

    async def get_session(self, headers: Mapping[str, str]) -> Session | None:
        """Return the session for *headers*, or ``None`` when no token is present.

        Raises:
            JWTError: When the token is invalid, expired, or its signature
                does not verify.
            ValueError: When the token has no ``sub`` claim.
        """
        token = self._extract_token(headers)
        if token is None:
            return None

        try:
            payload: dict = _jose_jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
            )
        except JWTError as exc:
            logger.warning("Session token validation failed: %s", exc)
            raise

        subject = payload.get("sub")
        if not subject:
            logger.warning("Session token is missing the 'sub' claim")
            raise ValueError("Session token does not identify a user.")

        extra = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        user = User(
            id=str(subject),
            email=payload.get("email"),
            name=payload.get("name"),
            **extra,
        )
        exp = payload.get("exp")
        return Session(
            id=payload.get("sid"),
            user=user,
            expires_at=datetime.fromtimestamp(exp, UTC) if isinstance(exp, int | float) else None,
        )

    def issue(self, user_id: str, expires_in: int = 3600, **claims: object) -> str:
        """Sign a session token for *user_id*.

        Token issuance normally belongs to the authentication service; this
        helper exists for seed scripts and tests.
        """
        now = int(datetime.now(UTC).timestamp())
        payload = {"sub": user_id, "iat": now, "exp": now + expires_in, **claims}
        return _jose_jwt.encode(payload, self._secret, algorithm=self._algorithm)


__all__ = ["JWTSessionProvider"]
