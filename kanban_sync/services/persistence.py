"""
Store persistence adapters

The store writes its whole snapshot under one fixed key after every
transition and reads it back once at start-up. Adapters swallow and log
their own I/O failures: the in-memory snapshot stays authoritative for the
session, so a broken disk or Redis must never break a mutation.
"""
import json
import os
import tempfile
from typing import Dict, Optional

import redis
import structlog
from pydantic import ValidationError as PydanticValidationError

from kanban_sync.config import Settings, settings as default_settings
from kanban_sync.models import StoreState

logger = structlog.get_logger()

SCHEMA_VERSION = 1


class StorageAdapter:
    """Key-value string storage"""

    def __init__(self):
        self.stats = {"loads": 0, "saves": 0, "deletes": 0, "errors": 0}

    def load(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def save(self, key: str, value: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class MemoryStorage(StorageAdapter):
    """Process-local storage, used by default and in tests"""

    def __init__(self):
        super().__init__()
        self.data: Dict[str, str] = {}

    def load(self, key: str) -> Optional[str]:
        self.stats["loads"] += 1
        return self.data.get(key)

    def save(self, key: str, value: str) -> bool:
        self.data[key] = value
        self.stats["saves"] += 1
        return True

    def delete(self, key: str) -> bool:
        self.stats["deletes"] += 1
        return self.data.pop(key, None) is not None


class FileStorage(StorageAdapter):
    """One JSON document per key inside a directory"""

    def __init__(self, directory: str):
        super().__init__()
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                value = fh.read()
            self.stats["loads"] += 1
            return value
        except FileNotFoundError:
            return None
        except OSError as e:
            self.stats["errors"] += 1
            logger.warning("Store file read failed", path=path, error=str(e))
            return None

    def save(self, key: str, value: str) -> bool:
        path = self._path(key)
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            # Write-then-rename so a crash never leaves half a snapshot
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_path, path)
            tmp_path = None
            self.stats["saves"] += 1
            return True
        except OSError as e:
            self.stats["errors"] += 1
            logger.warning("Store file write failed", path=path, error=str(e))
            return False
        finally:
            if tmp_path is not None:
                try:
                    os.remove(tmp_path)
                except OSError as e:
                    logger.warning("Store temp file cleanup failed", path=tmp_path, error=str(e))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            os.remove(path)
            self.stats["deletes"] += 1
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            self.stats["errors"] += 1
            logger.warning("Store file delete failed", path=path, error=str(e))
            return False


class RedisStorage(StorageAdapter):
    """Snapshot kept as a JSON string in Redis, without TTL"""

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        super().__init__()
        self.url = url
        self.redis = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )

    def load(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            self.stats["loads"] += 1
            return value
        except redis.RedisError as e:
            self.stats["errors"] += 1
            logger.warning("Store load from Redis failed", key=key, error=str(e))
            return None

    def save(self, key: str, value: str) -> bool:
        try:
            self.redis.set(key, value)
            self.stats["saves"] += 1
            return True
        except redis.RedisError as e:
            self.stats["errors"] += 1
            logger.warning("Store save to Redis failed", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        try:
            result = self.redis.delete(key)
            self.stats["deletes"] += 1
            return bool(result)
        except redis.RedisError as e:
            self.stats["errors"] += 1
            logger.warning("Store delete from Redis failed", key=key, error=str(e))
            return False

    def close(self) -> None:
        self.redis.close()
        logger.info("Redis connection closed", stats=self.stats)


def build_storage(config: Optional[Settings] = None) -> StorageAdapter:
    config = config or default_settings
    if config.storage_backend == "file":
        return FileStorage(config.storage_path)
    if config.storage_backend == "redis":
        return RedisStorage(config.redis_url)
    return MemoryStorage()


def dump_state(state: StoreState) -> str:
    return json.dumps({
        "version": SCHEMA_VERSION,
        "state": state.model_dump(mode="json", by_alias=True),
    })


def load_state(raw: Optional[str]) -> Optional[StoreState]:
    """Parse a persisted envelope; anything unreadable or from another schema is dropped."""
    if not raw:
        return None
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Discarding unreadable store snapshot", error=str(e))
        return None

    if not isinstance(envelope, dict) or envelope.get("version") != SCHEMA_VERSION:
        version = envelope.get("version") if isinstance(envelope, dict) else None
        logger.warning(
            "Discarding store snapshot from another schema version",
            found=version,
            expected=SCHEMA_VERSION,
        )
        return None

    try:
        return StoreState.model_validate(envelope.get("state") or {})
    except PydanticValidationError as e:
        logger.warning("Discarding invalid store snapshot", errors=e.error_count())
        return None
