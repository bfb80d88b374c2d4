"""Client key extraction for rate limiting."""

from __future__ import annotations

from fastapi import Request


def client_key(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Return the counting key for ``request``: its network origin address.

    Behind a reverse proxy every request arrives from the proxy address, so
    ``trust_forwarded_for`` switches to the first ``X-Forwarded-For`` entry.
    Only enable it when the proxy overwrites that header.

    Args:
        request: Incoming request.
        trust_forwarded_for: Whether to honour ``X-Forwarded-For``.

    Returns:
        str: Client address, or ``"unknown"`` when it cannot be determined.
    """

    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
