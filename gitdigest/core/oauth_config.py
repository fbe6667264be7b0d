from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.schemas.oauth import OAuthClientConfig
from gitdigest.services.ingestion.errors import NetworkOrProtocolError


class OAuthConfigLoader:
    """
    OAuth client ids for the account-connection UI, fetched on first use and
    kept for the lifetime of whoever owns the loader (the app state).
    """

    def __init__(self, url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.url = url or settings.OAUTH_CONFIG_URL
        self.transport = transport
        self._config: Optional[OAuthClientConfig] = None

    @property
    def loaded(self) -> bool:
        return self._config is not None

    async def get(self) -> OAuthClientConfig:
        if self._config is not None:
            return self._config

        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                resp = await client.get(self.url)
            resp.raise_for_status()
            self._config = OAuthClientConfig.model_validate(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch OAuth config: {e}")
            raise NetworkOrProtocolError(
                "Could not load OAuth configuration. Please try again later."
            ) from e

        return self._config

    def client_id(self, provider: str) -> Optional[str]:
        if self._config is None:
            return None
        entry = getattr(self._config, provider, None)
        return entry.client_id if entry else None
