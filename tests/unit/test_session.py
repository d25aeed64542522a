"""Unit tests — hive_tenancy.resolution.session"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from starlette.datastructures import Headers

from hive_tenancy.core.exceptions import UnauthorizedError
from hive_tenancy.core.types import SessionResult, User
from hive_tenancy.resolution.session import (
    ANONYMOUS,
    SessionResolver,
    headers_to_mapping,
    require_user,
    user_id_of,
)

pytestmark = pytest.mark.unit


# ─────────────────────────── headers_to_mapping ──────────────────────────────


class TestHeadersToMapping:
    def test_none(self):
        assert headers_to_mapping(None) == {}

    def test_object_without_items(self):
        assert headers_to_mapping(42) == {}

    def test_drops_non_string_and_empty_entries(self):
        headers = {"host": "acme.example.com", "x-empty": "", "x-num": 5, 7: "seven"}
        assert headers_to_mapping(headers) == {"host": "acme.example.com"}

    def test_names_lowercased(self):
        assert headers_to_mapping({"Authorization": "Bearer t"}) == {"authorization": "Bearer t"}

    def test_repeated_headers_joined(self):
        headers = Headers(raw=[(b"accept", b"text/html"), (b"accept", b"application/json")])
        # Starlette's items() yields every raw pair
        assert headers_to_mapping(headers)["accept"] == "text/html, application/json"


# ─────────────────────────── resolver ────────────────────────────────────────


class TestSessionResolver:
    async def test_valid_session(self, provider):
        result = await SessionResolver(provider).resolve({"authorization": "Bearer u-ada"})
        assert result.is_authenticated
        assert result.user.id == "u-ada"
        assert result.session.user is result.user

    async def test_provider_receives_plain_mapping(self, provider):
        await SessionResolver(provider).resolve(Headers({"Authorization": "Bearer u-ada"}))
        assert provider.seen == [{"authorization": "Bearer u-ada"}]
        assert type(provider.seen[0]) is dict

    async def test_no_credentials_is_anonymous(self, provider):
        result = await SessionResolver(provider).resolve({})
        assert result == ANONYMOUS
        assert result.session is None
        assert result.user is None

    async def test_provider_exception_is_anonymous(self, provider):
        result = await SessionResolver(provider).resolve({"authorization": "Bearer broken"})
        assert result.session is None
        assert result.user is None
        assert provider.calls == 1

    async def test_session_without_user_is_anonymous(self):
        backend = AsyncMock()
        backend.get_session.return_value = {"id": "s-1", "user": None}
        result = await SessionResolver(backend).resolve({})
        assert result.session is None
        assert result.user is None

    async def test_mapping_session_supported(self):
        backend = AsyncMock()
        session = {"id": "s-1", "user": {"id": "u-1"}}
        backend.get_session.return_value = session
        result = await SessionResolver(backend).resolve({})
        assert result.session is session
        assert result.user == {"id": "u-1"}

    async def test_never_retries(self):
        backend = AsyncMock()
        backend.get_session.side_effect = TimeoutError()
        await SessionResolver(backend).resolve({})
        assert backend.get_session.await_count == 1


# ─────────────────────────── require_user ────────────────────────────────────


class TestRequireUser:
    def test_returns_user(self):
        user = User(id="u-1")
        assert require_user(SessionResult(session=object(), user=user)) is user

    def test_anonymous_raises(self):
        with pytest.raises(UnauthorizedError):
            require_user(ANONYMOUS)

    def test_user_without_id_raises(self):
        with pytest.raises(UnauthorizedError):
            require_user(SessionResult(session=object(), user={"email": "x@example.com"}))


class TestUserIdOf:
    @pytest.mark.parametrize(
        ("user", "expected"),
        [
            (None, None),
            ({"id": ""}, None),
            ({"id": 7}, "7"),
            (User(id="u-1"), "u-1"),
        ],
    )
    def test_user_id_of(self, user, expected):
        assert user_id_of(user) == expected
