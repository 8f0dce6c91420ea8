"""Firebase Auth REST calls and google-auth credentials for anonymous users."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

import httpx
from google.auth import credentials, exceptions
from google.auth.transport import Request

SIGN_UP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signUp"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FirebaseSession:
    """ID and refresh tokens for one signed-in Firebase user."""

    user_id: str
    id_token: str
    refresh_token: str
    expires_in: int = DEFAULT_TOKEN_LIFETIME_SECONDS

    @classmethod
    def from_sign_up(cls, body: dict[str, object]) -> "FirebaseSession":
        """Build a session from an ``accounts:signUp`` response."""
        return cls(
            user_id=str(body["localId"]),
            id_token=str(body["idToken"]),
            refresh_token=str(body["refreshToken"]),
            expires_in=int(body.get("expiresIn", DEFAULT_TOKEN_LIFETIME_SECONDS)),
        )

    @classmethod
    def from_token_exchange(cls, body: dict[str, object]) -> "FirebaseSession":
        """Build a session from a securetoken ``refresh_token`` grant response."""
        return cls(
            user_id=str(body["user_id"]),
            id_token=str(body["id_token"]),
            refresh_token=str(body["refresh_token"]),
            expires_in=int(body.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)),
        )


def _refresh_form(refresh_token: str) -> dict[str, str]:
    return {"grant_type": "refresh_token", "refresh_token": refresh_token}


def _expiry(expires_in: int) -> datetime:
    # google-auth compares expiry against naive UTC datetimes.
    return datetime.now(UTC).replace(tzinfo=None) + timedelta(seconds=expires_in)


async def sign_up_anonymously(
    http_client: httpx.AsyncClient, api_key: str
) -> FirebaseSession:
    """Create a new anonymous Firebase user."""
    response = await http_client.post(
        SIGN_UP_URL,
        params={"key": api_key},
        json={"returnSecureToken": True},
        timeout=15,
    )
    response.raise_for_status()
    return FirebaseSession.from_sign_up(response.json())


async def exchange_refresh_token(
    http_client: httpx.AsyncClient, api_key: str, refresh_token: str
) -> FirebaseSession:
    """Resume an existing user by trading its refresh token for new tokens."""
    response = await http_client.post(
        TOKEN_URL,
        params={"key": api_key},
        data=_refresh_form(refresh_token),
        timeout=15,
    )
    response.raise_for_status()
    return FirebaseSession.from_token_exchange(response.json())


class FirebaseUserCredentials(credentials.Credentials):
    """Credentials carrying a Firebase ID token.

    google-auth calls ``refresh`` whenever the token is missing or about to
    expire, which keeps long-running Firestore clients and watches
    authorized. ``on_refresh`` receives every new session so the caller can
    persist the rotated refresh token.
    """

    def __init__(
        self,
        api_key: str,
        session: FirebaseSession,
        on_refresh: Callable[[FirebaseSession], None] | None = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._on_refresh = on_refresh
        self._apply(session)

    def _apply(self, session: FirebaseSession) -> None:
        self.token = session.id_token
        self.expiry = _expiry(session.expires_in)
        self.refresh_token = session.refresh_token
        self.user_id = session.user_id

    def refresh(self, request: Request) -> None:
        response = request(
            url=f"{TOKEN_URL}?key={self._api_key}",
            method="POST",
            body=urlencode(_refresh_form(self.refresh_token)).encode("utf-8"),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if response.status != 200:
            raise exceptions.RefreshError(
                f"Firebase token refresh failed with status {response.status}"
            )
        session = FirebaseSession.from_token_exchange(json.loads(response.data))
        self._apply(session)
        _logger.info("Refreshed Firebase ID token for %s", session.user_id)
        if self._on_refresh is not None:
            self._on_refresh(session)
