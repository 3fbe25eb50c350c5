"""
Human-readable repository names.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from oaiharvest.logging import get_logger
from oaiharvest.oai.client import DEFAULT_USER_AGENT, OAIPMHClient, parse_identify
from oaiharvest.oai.queries import identify_params

logger = get_logger(__name__)


UNKNOWN_PROVIDER = "Unknown Provider"

# first letter and remainder of the host name, without "www."
REPOSITORY_URL_PATTERN = re.compile(r"^(?:www\.)?([^\W_])([^/:?#]*)")


def name_from_host_url(host_url: Optional[str]) -> Optional[str]:
    """
    Derive a repository name from its address.

    Example:
        >>> name_from_host_url("https://www.pangaea.de/oai/provider")
        'Pangaea.de'
    """
    if not host_url:
        return None
    address = host_url.strip()
    _, separator, remainder = address.partition("://")
    if separator:
        address = remainder
    match = REPOSITORY_URL_PATTERN.match(address)
    if not match:
        return None
    return match.group(1).upper() + match.group(2)


def lookup_repository_name(
    host_url: Optional[str],
    timeout: float = 5,
    user_agent: str = DEFAULT_USER_AGENT,
    client_factory: Optional[Callable[[str], OAIPMHClient]] = None,
) -> str:
    """
    Name of the repository behind ``host_url``.

    Asks the repository via Identify; if that fails, falls back to the host
    name, and finally to ``"Unknown Provider"``.
    """
    if not host_url:
        return UNKNOWN_PROVIDER

    if client_factory is None:
        client = OAIPMHClient(host_url, timeout=timeout, user_agent=user_agent)
    else:
        client = client_factory(host_url)

    root = client.fetch(identify_params(), timeout=timeout)
    identity = parse_identify(root) if root is not None else None
    if identity is not None and identity.repository_name:
        return identity.repository_name

    fallback = name_from_host_url(host_url)
    if fallback:
        logger.debug("Using host name of %s as repository name", host_url)
        return fallback

    return UNKNOWN_PROVIDER
