"""Turn DownloadClient rows into backend instances."""

import logging

from sqlmodel import select

from seriesledger.core.errors import BackendError
from seriesledger.database import async_session
from seriesledger.downloaders.base import DownloadBackend
from seriesledger.downloaders.mock import MockBackend
from seriesledger.downloaders.qbittorrent import QBittorrentBackend
from seriesledger.downloaders.transmission import TransmissionBackend
from seriesledger.models import ClientType, DownloadClient

logger = logging.getLogger(__name__)


def backend_for(client: DownloadClient) -> DownloadBackend:
    """Build the backend implementation for a configured client."""
    if client.type == ClientType.QBITTORRENT:
        return QBittorrentBackend(
            client.host, client.port, client.username, client.password, name=client.label
        )
    if client.type == ClientType.TRANSMISSION:
        return TransmissionBackend(
            client.host, client.port, client.username, client.password, name=client.label
        )
    if client.type == ClientType.MOCK:
        return MockBackend(name=client.label)
    raise BackendError(f"Unsupported client type: {client.type}")


async def load_backends() -> list[DownloadBackend]:
    """All enabled backends, default client first."""
    async with async_session() as session:
        result = await session.execute(
            select(DownloadClient)
            .where(DownloadClient.enabled == True)  # noqa: E712
            .order_by(DownloadClient.is_default.desc(), DownloadClient.id)
        )
        clients = result.scalars().all()
    return [backend_for(c) for c in clients]


async def resolve_backend(client_id: int | None) -> DownloadBackend | None:
    """Backend for ``client_id``, falling back to the default (then any enabled) client."""
    async with async_session() as session:
        client = None
        if client_id is not None:
            client = await session.get(DownloadClient, client_id)
            if client is not None and not client.enabled:
                client = None
            if client is None:
                logger.info(f"Client {client_id} unavailable, trying default client")

        if client is None:
            result = await session.execute(
                select(DownloadClient)
                .where(DownloadClient.enabled == True)  # noqa: E712
                .order_by(DownloadClient.is_default.desc(), DownloadClient.id)
                .limit(1)
            )
            client = result.scalar_one_or_none()

    return backend_for(client) if client is not None else None
