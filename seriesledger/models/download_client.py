"""DownloadClient model - connection settings for a torrent backend."""

from enum import Enum

from sqlmodel import Field, SQLModel


class ClientType(str, Enum):
    """Supported download backend implementations."""

    QBITTORRENT = "qbittorrent"
    TRANSMISSION = "transmission"
    MOCK = "mock"


class DownloadClient(SQLModel, table=True):
    """A configured download backend."""

    __tablename__ = "download_clients"

    id: int | None = Field(default=None, primary_key=True)
    name: str = ""
    type: ClientType = ClientType.QBITTORRENT
    host: str = "127.0.0.1"
    port: int = 8080
    username: str = ""
    password: str = ""
    is_default: bool = False
    enabled: bool = True

    @property
    def label(self) -> str:
        return self.name or f"{self.type.value}@{self.host}:{self.port}"
