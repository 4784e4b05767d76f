# core/connectivity.py
"""Online/offline detection for the storyteller client."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import structlog

from config import settings

logger = structlog.get_logger(__name__)


def default_network_flag() -> bool:
    """Platform connectivity flag; ``OFFLINE_MODE`` forces it off."""
    return not settings.OFFLINE_MODE


class ConnectivityProbe:
    """Combine a platform flag with a liveness probe of the health endpoint.

    The flag is authoritative for "definitely offline". When it is set the
    health endpoint is queried and anything other than a 2xx answer counts
    as offline. ``is_online`` never raises.
    """

    def __init__(
        self,
        health_url: str = settings.HEALTH_CHECK_URL,
        network_flag: Callable[[], bool] = default_network_flag,
        timeout: float = settings.HEALTH_CHECK_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.health_url = health_url
        self.network_flag = network_flag
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def is_online(self) -> bool:
        try:
            if not self.network_flag():
                logger.debug("Network flag reports offline; skipping health probe.")
                return False
            response = await self._client.get(self.health_url)
        except Exception as exc:
            logger.debug(
                "Health probe failed; treating client as offline.",
                url=self.health_url,
                error=str(exc),
            )
            return False
        if not response.is_success:
            logger.debug(
                "Health probe returned non-success status.",
                url=self.health_url,
                status=response.status_code,
            )
            return False
        return True
