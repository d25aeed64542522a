"""Unit tests — hive_tenancy.resolution.host

Verified:
* X-Forwarded-Host wins over Host; first entry of a proxy chain
* Port stripping, lowercasing, whitespace trimming
* Bracketed IPv6 literals
* Missing / malformed headers yield ""
* trust_x_forwarded=False ignores the forwarded header
* Starlette Headers and plain dicts both accepted and satisfy HeadersLike
"""

from __future__ import annotations

import pytest
from starlette.datastructures import Headers

from hive_tenancy.core.types import HeadersLike
from hive_tenancy.resolution.host import normalize_host, parse_bare_host

pytestmark = pytest.mark.unit


class TestParseBareHost:
    def test_forwarded_host_with_chain_and_port(self):
        headers = {"x-forwarded-host": "Acme.Example.com:8443, proxy.internal"}
        assert parse_bare_host(headers) == "acme.example.com"

    def test_host_with_port(self):
        assert parse_bare_host({"host": "localhost:3000"}) == "localhost"

    def test_forwarded_host_takes_precedence(self):
        headers = {"host": "internal.svc:8080", "x-forwarded-host": "acme.example.com"}
        assert parse_bare_host(headers) == "acme.example.com"

    def test_blank_forwarded_host_falls_back_to_host(self):
        headers = {"host": "acme.example.com", "x-forwarded-host": "   "}
        assert parse_bare_host(headers) == "acme.example.com"

    def test_no_headers(self):
        assert parse_bare_host({}) == ""

    def test_none_headers(self):
        assert parse_bare_host(None) == ""

    def test_object_without_get(self):
        assert parse_bare_host(object()) == ""

    def test_non_string_value_ignored(self):
        assert parse_bare_host({"host": 1234}) == ""

    def test_untrusted_forwarded_header_is_ignored(self):
        headers = {"host": "acme.example.com", "x-forwarded-host": "evil.example.com"}
        assert parse_bare_host(headers, trust_x_forwarded=False) == "acme.example.com"

    def test_plain_dict_is_matched_case_insensitively(self):
        assert parse_bare_host({"Host": "ACME.example.com"}) == "acme.example.com"

    def test_starlette_headers(self):
        headers = Headers(raw=[(b"host", b"acme.example.com:443")])
        assert parse_bare_host(headers) == "acme.example.com"

    def test_bracketed_ipv6(self):
        assert parse_bare_host({"host": "[::1]:3000"}) == "::1"

    @pytest.mark.parametrize(
        "headers",
        [Headers(raw=[(b"host", b"acme.example.com")]), {"host": "acme.example.com"}],
    )
    def test_accepted_collections_are_headers_like(self, headers):
        assert isinstance(headers, HeadersLike)
        assert parse_bare_host(headers) == "acme.example.com"

    def test_plain_object_is_not_headers_like(self):
        assert not isinstance(object(), HeadersLike)


class TestNormalizeHost:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("  Example.COM  ", "example.com"),
            ("example.com:80", "example.com"),
            ("a.example.com, b.example.com", "a.example.com"),
            ("[2001:db8::1]", "2001:db8::1"),
            ("", ""),
        ],
    )
    def test_normalization(self, raw, expected):
        assert normalize_host(raw) == expected

    def test_result_has_no_port_or_uppercase(self):
        bare = normalize_host("MiXeD.Example.Org:9000")
        assert ":" not in bare
        assert bare == bare.lower()
