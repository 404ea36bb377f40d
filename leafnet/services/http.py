import httpx
from typing import Any, Dict, Optional
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import Settings


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Create the HTTP client shared by all provider services."""
    timeout_config = httpx.Timeout(
        settings.http_timeout_seconds,
        connect=10.0,
    )
    return httpx.AsyncClient(
        timeout=timeout_config,
        limits=httpx.Limits(
            max_keepalive_connections=20,
            max_connections=20,
            keepalive_expiry=30,
        ),
        headers={"User-Agent": "LeafNetwork/1.0"},
    )


# Only idempotent reads are retried, and only on transport errors.
@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    check: bool = True,
) -> Any:
    """GET a URL and decode its JSON body.

    Raises on non-2xx unless check is False, in which case the error
    body is decoded and returned like any other.
    """
    response = await client.get(url, params=params)
    if check:
        response.raise_for_status()
    return response.json()


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    params: Optional[Dict[str, Any]] = None,
    check: bool = True,
) -> Any:
    """POST a JSON payload and decode the JSON reply (see get_json for check)."""
    response = await client.post(url, json=payload, params=params)
    if check:
        response.raise_for_status()
    return response.json()
