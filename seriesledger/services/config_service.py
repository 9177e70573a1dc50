"""Configuration service for managing app settings.

Provides functions to get and update configuration stored in SQLite.
"""

import logging

from sqlmodel import select

from seriesledger.core.errors import ConfigurationError
from seriesledger.database import async_session
from seriesledger.models.app_config import AppConfig

logger = logging.getLogger(__name__)


async def get_config() -> AppConfig:
    """Get the current configuration, creating defaults if none exists."""
    async with async_session() as session:
        result = await session.execute(select(AppConfig).limit(1))
        config = result.scalar_one_or_none()

        if config is None:
            config = AppConfig()
            session.add(config)
            await session.commit()
            await session.refresh(config)
            logger.info("Created default configuration")

        return config


async def update_config(**kwargs) -> AppConfig:
    """Update configuration with provided values.

    Args:
        **kwargs: Field names and values to update. Unknown names and None
            values are ignored.

    Returns:
        Updated AppConfig instance

    Raises:
        ConfigurationError: If video_extensions would leave no extension.
    """
    extensions = kwargs.get("video_extensions")
    if extensions is not None and not any(ext.strip() for ext in extensions.split(",")):
        raise ConfigurationError("video_extensions must list at least one extension")

    async with async_session() as session:
        result = await session.execute(select(AppConfig).limit(1))
        config = result.scalar_one_or_none()

        if config is None:
            config = AppConfig()
            session.add(config)

        for key, value in kwargs.items():
            if not hasattr(config, key) or key == "id":
                continue
            if value is None:
                continue
            setattr(config, key, value)

        await session.commit()
        await session.refresh(config)

        logger.info(f"Updated configuration: {list(kwargs.keys())}")
        return config
