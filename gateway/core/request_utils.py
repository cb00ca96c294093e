"""Request utility functions."""

import ipaddress
import logging

from fastapi import Request

logger = logging.getLogger(__name__)


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request, trusted_proxies: set[str] | frozenset[str] = frozenset()) -> str:
    """Resolve the caller's IP address.

    ``X-Forwarded-For`` can be spoofed by any client, so it is only honored
    when the direct peer is one of ``trusted_proxies``. The first valid
    address in the header is the originating client.
    """
    direct_ip = request.client.host if request.client else None

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and direct_ip and direct_ip in trusted_proxies:
        client_ip = forwarded.split(",")[0].strip()
        if _is_valid_ip(client_ip):
            return client_ip
        logger.warning(f"Invalid IP in X-Forwarded-For header: {client_ip}")

    return direct_ip or "unknown"
