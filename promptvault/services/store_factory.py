"""
Build the configured record store.
"""

import logging
from typing import Callable

from ..core.config import Settings
from ..core.remote_config import load_remote_config
from ..schemas.prompt import SearchMode
from .record_store import RecordStore
from .remote_store import RemoteRecordStore
from .sqlite_store import SQLiteRecordStore

logger = logging.getLogger(__name__)


async def create_store(settings: Settings) -> RecordStore:
    """
    Open the backend selected by ``settings.backend``.

    Raises:
        ConfigurationError: If the remote backend is selected but not configured
    """
    if settings.backend == "remote":
        return RemoteRecordStore.from_config(load_remote_config(settings))

    logger.info(f"Using embedded backend at {settings.database_path}")
    return await SQLiteRecordStore.open(
        settings.database_path,
        search_mode=SearchMode(settings.search_mode),
        echo=settings.database_echo,
    )


def remote_store_factory(settings: Settings) -> Callable[[], RecordStore]:
    """Deferred remote store construction; configuration is resolved on each call."""

    def build() -> RecordStore:
        return RemoteRecordStore.from_config(load_remote_config(settings))

    return build
