"""HTTP JSON fetching with logging and response time tracking."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "nzi"


class FetchFailure(Exception):
    """Network, HTTP status, or payload error from a data source."""


def make_client(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout, headers={"User-Agent": USER_AGENT}, follow_redirects=True)


def get_json(client: httpx.Client, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """GET ``url`` and return the decoded JSON object, or raise FetchFailure."""
    t0 = time.monotonic()
    try:
        r = client.get(url, params=params)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as e:
        elapsed = (time.monotonic() - t0) * 1000
        logger.warning("GET %s → %d (%.0fms)", url, e.response.status_code, elapsed)
        raise FetchFailure(f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        elapsed = (time.monotonic() - t0) * 1000
        logger.warning("GET %s failed (%.0fms): %s", url, elapsed, e)
        raise FetchFailure(str(e) or type(e).__name__) from e
    except ValueError as e:
        logger.warning("GET %s returned malformed JSON: %s", url, e)
        raise FetchFailure("malformed response") from e

    elapsed = (time.monotonic() - t0) * 1000
    logger.debug("GET %s → %d (%.0fms)", url, r.status_code, elapsed)
    if not isinstance(data, dict):
        raise FetchFailure("unexpected response shape")
    return data
