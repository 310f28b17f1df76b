"""
Simple HTTP caching with coordinate canonicalization using requests-cache.
"""

import os
from typing import Any

import requests
from requests_cache import CachedSession

from soil_health.logging_config import get_logger

logger = get_logger(__name__)

# Module-level singleton (tests can override/reset)
_SESSION: CachedSession | None = None


def canonicalize_coords(params: dict[str, Any]) -> dict[str, Any]:
    """Round coordinate parameters to 4 decimals so nearby lookups share a cache entry."""
    if not params:
        return params

    canonical: dict[str, Any] = {}
    for key, value in params.items():
        if key.lower() in {"lat", "latitude", "lon", "lng", "longitude"}:
            try:
                canonical[key] = round(float(value), 4)
            except (ValueError, TypeError):
                canonical[key] = value
        else:
            canonical[key] = value

    return canonical


def _cache_ok(response: requests.Response) -> bool:
    if response.status_code != 200:
        return False
    try:
        payload = response.json()
    except ValueError:
        return False
    # Nominatim answers 200 with an error body for unresolvable points
    return not (isinstance(payload, dict) and "error" in payload)


def _make_session() -> CachedSession:
    """Create a new SQLite-backed cached session."""
    cache_name = os.getenv("CACHE_NAME", "cache/http")

    # Support pytest-xdist parallel testing with per-worker cache files
    xdist_worker = os.getenv("PYTEST_XDIST_WORKER")
    if xdist_worker:
        cache_name = f"{cache_name}_{xdist_worker}"

    logger.info(f"Using SQLite cache backend: {cache_name}")
    return CachedSession(
        cache_name=cache_name,
        backend="sqlite",
        cache_control=True,
        allowable_codes=(200,),
        expire_after=int(os.getenv("CACHE_TTL_SECONDS", "86400")),
        filter_fn=_cache_ok,
    )


def get_session() -> CachedSession:
    """
    Get the shared cached session.

    Environment variables:
    - CACHE_NAME: Cache file name (default: 'cache/http')
    - CACHE_TTL_SECONDS: Entry lifetime (default: one day)
    """
    global _SESSION
    if _SESSION is None:
        _SESSION = _make_session()
    return _SESSION


def reset_session() -> None:
    """Close and clear the module session (for tests)."""
    global _SESSION
    if _SESSION is not None:
        _SESSION.close()
    _SESSION = None


def set_session_for_tests(session: CachedSession) -> None:
    """Force get_session() to return a provided session (for tests)."""
    global _SESSION
    _SESSION = session


def request(
    method: str,
    url: str,
    use_cache: bool = True,
    **kwargs: Any,
) -> requests.Response:
    """
    Make an HTTP request through the cache with coordinate canonicalization.

    Args:
        method: HTTP method
        url: Request URL
        use_cache: When False, bypass the cache entirely
        **kwargs: Additional request parameters

    Returns:
        HTTP response
    """
    if kwargs.get("params"):
        original_params = dict(kwargs["params"])
        kwargs["params"] = canonicalize_coords(kwargs["params"])
        if original_params != kwargs["params"]:
            logger.debug(
                f"Canonicalized coordinates: {original_params} -> {kwargs['params']}"
            )

    if use_cache:
        response = get_session().request(method, url, **kwargs)
        cache_status = "HIT" if getattr(response, "from_cache", False) else "MISS"
    else:
        with requests.Session() as session:
            response = session.request(method, url, **kwargs)
        cache_status = "BYPASS"

    logger.debug(f"{method} {url} -> {response.status_code} (Cache: {cache_status})")
    return response
