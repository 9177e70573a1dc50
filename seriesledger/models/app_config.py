"""Application configuration stored in SQLite.

This model stores user-configurable settings that persist across restarts
and can be modified via the API.
"""

from sqlmodel import Field, SQLModel

DEFAULT_VIDEO_EXTENSIONS = ".mkv,.mp4,.avi,.mov,.wmv,.flv,.webm,.m4v,.ts"


class AppConfig(SQLModel, table=True):
    """User-configurable application settings stored in database."""

    __tablename__ = "app_config"

    id: int | None = Field(default=None, primary_key=True)

    # Season packs: only request files holding episodes not yet owned
    smart_selection_enabled: bool = True

    # Defaults for subscriptions that don't set their own
    default_save_path: str = ""
    default_category: str = "Series"

    # Log every per-item decision at INFO instead of DEBUG
    enable_system_logs: bool = False

    # Extensions that count as "real" content for has_new_episodes
    video_extensions: str = DEFAULT_VIDEO_EXTENSIONS

    @property
    def video_extension_list(self) -> tuple[str, ...]:
        return tuple(
            ext.strip().lower() for ext in self.video_extensions.split(",") if ext.strip()
        )
