from __future__ import annotations

import logging
from pathlib import Path

from src.core.config.env import get_env_vars
from src.core.config.models import AppConfig
from src.data_access.memory import InMemoryStore
from src.data_access.relational.postgres import PostgresStore
from src.data_access.store import RecordStore

log = logging.getLogger("data_access")


def build_store(config: AppConfig, project_root: Path | None = None, env: dict[str, str] | None = None) -> RecordStore:
    """Postgres when the session store URL is set, otherwise an in-memory store."""
    env = env if env is not None else get_env_vars(config.env_file_path, project_root)
    url = config.get_store_url(env)
    if url:
        return PostgresStore(url)
    log.warning("No %s set; records are kept in memory only",
                config.session_store.connection_id if config.session_store else "session store")
    return InMemoryStore()
