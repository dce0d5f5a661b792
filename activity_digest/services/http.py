"""Retry-aware requests session for the narrative summary API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import SummarizerConfig

_LOGGER = logging.getLogger("digest.http")
# 529 is the Messages API "overloaded" status.
_STATUS_FORCELIST = (429, 500, 502, 503, 504, 529)
_ALLOWED_METHODS = frozenset({"POST"})


def build_session(config: SummarizerConfig) -> Session:
    """Session whose adapter retries transient API failures per ``config``."""
    retries = max(0, config.retries)
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        backoff_factor=max(0.0, config.backoff_factor),
        status_forcelist=_STATUS_FORCELIST,
        allowed_methods=_ALLOWED_METHODS,
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def request_timeout(config: SummarizerConfig) -> tuple[float, float]:
    """(connect, read) pair; the read timeout always outlasts the connect one."""
    connect = max(0.1, float(config.connect_timeout))
    read = max(connect + 1.0, float(config.timeout))
    return connect, read


def http_request(
    method: str,
    url: str,
    *,
    session: Session,
    timeout: Any,
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> Response:
    """Perform a request and log transport failures before re-raising them."""
    log = logger or _LOGGER
    verb = method.upper()
    try:
        return session.request(verb, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        log.warning("HTTP %s %s failed: %s", verb, url, exc)
        raise
