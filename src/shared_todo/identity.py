from __future__ import annotations

from typing import Iterable, List, Optional

from fastapi import Request

from .errors import IdentityUnavailable
from .settings import get_settings


def _first_forwarded_for(request: Request) -> Optional[str]:
    """
    Left-most client address set by a proxy chain.

    X-Forwarded-For wins; otherwise the ``for=`` parameter of the first
    RFC 7239 ``Forwarded`` element is used.
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()

    forwarded = request.headers.get("forwarded")
    if forwarded:
        first = forwarded.split(",")[0]
        for part in first.split(";"):
            key, _, value = part.strip().partition("=")
            if key.lower() == "for" and value:
                value = value.strip('"')
                # [v6]:port and v4:port forms
                if value.startswith("["):
                    return value[1:].split("]")[0]
                if value.count(":") == 1:
                    return value.split(":")[0]
                return value
    return None


def _socket_peer(request: Request) -> Optional[str]:
    """
    Peer address of the raw socket, for servers that put their asyncio
    transport in the ASGI scope under ``"transport"``.

    uvicorn and hypercorn do not; they already report the socket peer as
    ``scope["client"]``, so with them this source is empty and the direct
    connection address is the last usable one.
    """
    transport = request.scope.get("transport")
    if transport is None or not hasattr(transport, "get_extra_info"):
        return None
    peer = transport.get_extra_info("peername")
    if isinstance(peer, (tuple, list)) and peer:
        return str(peer[0])
    if isinstance(peer, str):
        return peer
    return None


# PUBLIC_INTERFACE
def address_candidates(request: Request, trust_proxy: bool) -> List[Optional[str]]:
    """
    Candidate addresses for a request, highest priority first:
    proxy-forwarded (only when the proxy is trusted), direct connection,
    then the server transport's socket peer.
    """
    candidates: List[Optional[str]] = []
    if trust_proxy:
        candidates.append(_first_forwarded_for(request))
    candidates.append(request.client.host if request.client else None)
    candidates.append(_socket_peer(request))
    return candidates


# PUBLIC_INTERFACE
def resolve_identity(candidates: Iterable[Optional[str]]) -> str:
    """
    Return the first usable candidate address.

    Any non-empty string is accepted; the address format is not validated.

    Raises:
        IdentityUnavailable: no candidate is usable.
    """
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    raise IdentityUnavailable("Could not determine the network address of the request")


# PUBLIC_INTERFACE
def get_identity(request: Request) -> str:
    """FastAPI dependency returning the caller's resolved identity."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return resolve_identity(address_candidates(request, settings.trust_proxy))
