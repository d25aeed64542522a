"""Bare-host extraction from raw request headers.

Turns the ``X-Forwarded-Host`` / ``Host`` header of an incoming request into
a canonical *bare host*: lowercase, no port, no scheme, first entry of a
proxy chain.

Example::

    X-Forwarded-Host: Acme.Example.com:8443, proxy.internal → "acme.example.com"
    Host: localhost:3000                                     → "localhost"
    Host: [::1]:3000                                         → "::1"
    (no headers)                                             → ""

Security notes
--------------
``X-Forwarded-Host`` is read first because the dashboard is normally served
behind a reverse proxy.  If your deployment does **not** sit behind a trusted
proxy, pass ``trust_x_forwarded=False`` (``HIVE_TRUST_X_FORWARDED=false``)
so clients cannot pick their tenant by forging the header.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hive_tenancy.core.types import HeadersLike

logger = logging.getLogger(__name__)


def _header(headers: HeadersLike | None, name: str) -> str:
    """Return header *name* as a string, or ``""`` when absent or malformed."""
    if headers is None:
        return ""
    try:
        value = headers.get(name)
        if value is None and isinstance(headers, dict):
            # Plain dicts are case-sensitive, unlike Starlette Headers.
            value = next(
                (v for k, v in headers.items() if isinstance(k, str) and k.lower() == name),
                None,
            )
    except (AttributeError, TypeError):
        return ""
    return value if isinstance(value, str) else ""


def normalize_host(raw_host: str) -> str:
    """Canonicalize one raw host value.

    Lowercases and trims, keeps the first comma-separated entry, unwraps a
    bracketed IPv6 literal, and strips the port.
    """
    host = (raw_host or "").strip().lower()
    host = host.split(",", 1)[0].strip()
    if host.startswith("["):
        end = host.find("]")
        return host[1:end] if end != -1 else host[1:]
    return host.split(":", 1)[0]


def parse_bare_host(headers: HeadersLike | None, trust_x_forwarded: bool = True) -> str:
    """Extract the bare host from a request's headers.

    Args:
        headers: Header collection with a ``get`` method (Starlette
            ``Headers``, ``dict``).  ``None`` is treated as no headers.
        trust_x_forwarded: Read ``x-forwarded-host`` before ``host``.

    Returns:
        The bare host, or ``""`` when no usable header is present.  Never
        raises.
    """
    raw = ""
    if trust_x_forwarded:
        raw = _header(headers, "x-forwarded-host").strip()
    if not raw:
        raw = _header(headers, "host")
    bare = normalize_host(raw)
    logger.debug("Bare host %r from raw %r", bare, raw)
    return bare


__all__ = ["normalize_host", "parse_bare_host"]
