"""HTTP access to the Happy control plane."""

import logging

import httpx

logger = logging.getLogger(__name__)

# Timeout for health check requests
HEALTH_CHECK_TIMEOUT = 5.0


def create_control_plane_client(**kwargs) -> httpx.AsyncClient:
    """Create an async client for Happy server REST traffic.

    Control-plane requests must not inherit ambient proxy environment
    variables, so ``trust_env`` is always disabled.
    """
    kwargs["trust_env"] = False
    return httpx.AsyncClient(**kwargs)


def sessions_url(server_url: str) -> str:
    """Get the session listing endpoint for a server."""
    return f"{server_url.rstrip('/')}/v1/sessions"


async def check_server_health(server_url: str, timeout: float = HEALTH_CHECK_TIMEOUT) -> None:
    """Check that the Happy server is reachable.

    Any status below 500 counts as reachable: a 4xx means the server is up
    and answering, just not happy with this request.

    Raises:
        httpx.HTTPStatusError: If the server answered with a 5xx status.
        httpx.HTTPError: If the server could not be reached.
    """
    url = sessions_url(server_url)
    async with create_control_plane_client(timeout=timeout) as client:
        response = await client.get(url)

    if response.status_code >= 500:
        logger.debug(f"Health check for {url} got {response.status_code}")
        raise httpx.HTTPStatusError(
            f"Server error {response.status_code} from {url}",
            request=response.request,
            response=response,
        )
