"""Tests for Firebase session parsing and ID token refresh."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlsplit

import pytest
from google.auth import exceptions

from kitchen_inventory.adapters.firebase_auth import (
    TOKEN_URL,
    FirebaseSession,
    FirebaseUserCredentials,
)

SESSION = FirebaseSession(
    user_id="anon-1", id_token="old-token", refresh_token="refresh-0", expires_in=5
)


@dataclass
class FakeResponse:
    status: int
    data: bytes


@dataclass
class FakeRequest:
    """Stands in for a google-auth transport ``Request`` callable."""

    response: FakeResponse
    calls: list[dict[str, object]] = field(default_factory=list)

    def __call__(self, url, method="GET", body=None, headers=None, **_kwargs):  # type: ignore[no-untyped-def]
        self.calls.append({"url": url, "method": method, "body": body, "headers": headers})
        return self.response


def test_sign_up_body_is_parsed() -> None:
    session = FirebaseSession.from_sign_up(
        {"localId": "anon-7", "idToken": "id", "refreshToken": "rt", "expiresIn": "1800"}
    )

    assert session == FirebaseSession("anon-7", "id", "rt", 1800)


def test_refresh_rotates_tokens_and_reports_session() -> None:
    rotated: list[FirebaseSession] = []
    user_credentials = FirebaseUserCredentials("api-key", SESSION, on_refresh=rotated.append)
    request = FakeRequest(
        FakeResponse(
            200,
            json.dumps(
                {
                    "user_id": "anon-1",
                    "id_token": "new-token",
                    "refresh_token": "refresh-1",
                    "expires_in": "3600",
                }
            ).encode("utf-8"),
        )
    )

    user_credentials.refresh(request)

    call = request.calls[0]
    url = urlsplit(str(call["url"]))
    assert f"{url.scheme}://{url.netloc}{url.path}" == TOKEN_URL
    assert parse_qs(url.query) == {"key": ["api-key"]}
    assert call["method"] == "POST"
    assert parse_qs(call["body"].decode("utf-8")) == {  # type: ignore[union-attr]
        "grant_type": ["refresh_token"],
        "refresh_token": ["refresh-0"],
    }
    assert user_credentials.token == "new-token"
    assert user_credentials.refresh_token == "refresh-1"
    assert user_credentials.expiry > datetime.now(UTC).replace(tzinfo=None) + timedelta(
        minutes=50
    )
    assert rotated == [FirebaseSession("anon-1", "new-token", "refresh-1", 3600)]


def test_short_lived_token_is_not_valid() -> None:
    user_credentials = FirebaseUserCredentials("api-key", SESSION)

    # google-auth treats tokens within its clock skew of expiry as expired.
    assert user_credentials.valid is False


def test_rejected_refresh_raises_refresh_error() -> None:
    rotated: list[FirebaseSession] = []
    user_credentials = FirebaseUserCredentials("api-key", SESSION, on_refresh=rotated.append)
    request = FakeRequest(FakeResponse(400, b'{"error": {"message": "TOKEN_EXPIRED"}}'))

    with pytest.raises(exceptions.RefreshError):
        user_credentials.refresh(request)

    assert user_credentials.token == "old-token"
    assert rotated == []
