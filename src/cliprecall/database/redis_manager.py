import json
import logging
from typing import Any, Optional

import redis

from cliprecall.database.preferences import PreferenceStore
from cliprecall.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

DEFAULT_KEY = "cliprecall:prefs"


class RedisPreferenceStore(PreferenceStore):
    """Preferences as JSON-encoded fields of a single Redis hash."""

    def __init__(self, client: Optional[redis.Redis] = None, key: str = DEFAULT_KEY,
                 host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None) -> None:
        self.key = key
        self.client = client or redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True
        )

    def ping(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as e:
            raise PersistenceFailure("redis is unreachable", e) from e

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.client.hget(self.key, key)
        except redis.RedisError as e:
            raise PersistenceFailure(f"could not read {key!r}", e) from e

        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring undecodable redis value for %r", key)
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"{key!r} is not serializable", e) from e
        try:
            self.client.hset(self.key, key, encoded)
        except redis.RedisError as e:
            raise PersistenceFailure(f"could not write {key!r}", e) from e

    def has(self, key: str) -> bool:
        try:
            return bool(self.client.hexists(self.key, key))
        except redis.RedisError as e:
            raise PersistenceFailure(f"could not read {key!r}", e) from e

    def clear(self) -> None:
        try:
            self.client.delete(self.key)
        except redis.RedisError as e:
            raise PersistenceFailure("could not clear preferences", e) from e

    def close(self) -> None:
        self.client.close()
