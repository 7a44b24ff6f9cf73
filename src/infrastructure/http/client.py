from __future__ import annotations

import ssl
from typing import TYPE_CHECKING

import aiohttp
import certifi

from shared.constants import HTTP_OK_MAX, HTTP_OK_MIN

if TYPE_CHECKING:
    from domain.models import ViewerSettings


def make_http_session(settings: ViewerSettings) -> aiohttp.ClientSession:
    """Create the tile download session.

    Must be called from the event loop that will use the session. The per-host
    connection cap is enforced by the connector; requests over the cap wait
    in the connector's queue.
    """
    # SSL-контекст с сертификатами из certifi
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(
        ssl=ssl_context,
        limit=0,
        limit_per_host=settings.max_conns_per_host,
    )
    timeout = (
        aiohttp.ClientTimeout(total=settings.http_timeout_s)
        if settings.http_timeout_s is not None
        else None
    )
    kwargs = {'timeout': timeout} if timeout is not None else {}
    return aiohttp.ClientSession(
        connector=connector,
        headers={'User-Agent': settings.user_agent},
        **kwargs,
    )


def is_success(status: int) -> bool:
    """True for 2xx status codes."""
    return HTTP_OK_MIN <= status <= HTTP_OK_MAX
