"""HTTP session factory with transport retries, timeouts and logging."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional, Tuple, Union

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import http_cfg
from .logging_setup import mask_secrets

logger = logging.getLogger(__name__)

Timeout = Union[float, Tuple[float, float]]


@lru_cache()
def session() -> Session:
    cfg = http_cfg()
    sess = requests.Session()
    sess.trust_env = False
    if cfg.proxy_url:
        sess.proxies.update({"http": cfg.proxy_url, "https": cfg.proxy_url})
    # Bot API sends are POSTs; their rate-limit retries belong to RetryPolicy,
    # so the transport only retries idempotent methods.
    retry = Retry(
        total=cfg.retry_total,
        backoff_factor=cfg.backoff_factor,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET", "HEAD", "OPTIONS", "TRACE"],
    )
    adapter = HTTPAdapter(max_retries=retry)
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess


def default_timeout() -> Tuple[float, float]:
    cfg = http_cfg()
    return (cfg.connect_timeout, cfg.timeout)


def post(
    url: str,
    *,
    data: Optional[Any] = None,
    timeout: Optional[Timeout] = None,
    context: Optional[str] = None,
    **kwargs: Any,
) -> Response:
    """POST ``data`` and return the response whatever its status code.

    Network-level failures are logged (with the bot token masked) and
    re-raised for the caller to classify.
    """

    effective_timeout = timeout if timeout is not None else default_timeout()
    try:
        return session().post(url, data=data, timeout=effective_timeout, **kwargs)
    except requests.RequestException as exc:
        safe_url = mask_secrets(url)
        if context:
            logger.warning("HTTP POST %s failed (%s): %s", safe_url, context, mask_secrets(str(exc)))
        else:
            logger.warning("HTTP POST %s failed: %s", safe_url, mask_secrets(str(exc)))
        raise
