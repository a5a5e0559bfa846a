"""Shared Temporal client for starting workflows from the API layer."""

from typing import Optional

from temporalio.client import Client as TemporalClient

from ideagraph.core.config import settings


class TemporalClientManager:
    """Lazily creates a Temporal client and keeps it around for reuse."""

    _client: Optional[TemporalClient] = None

    async def get_client(self) -> TemporalClient:
        if self._client is None:
            self._client = await TemporalClient.connect(
                f"{settings.temporal_host}:{settings.temporal_port}",
                namespace=settings.temporal_namespace,
            )
        return self._client

    def close(self) -> None:
        # Client connections are released with the process; just drop the reference
        self._client = None


_temporal_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    return await _temporal_manager.get_client()


def close_temporal_client() -> None:
    _temporal_manager.close()
