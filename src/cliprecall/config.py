import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv

from cliprecall.database.redis_manager import RedisPreferenceStore

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 9123
DEFAULT_REDIS_KEY = "cliprecall:prefs"
STORE_BACKENDS = ("json", "redis")


def default_data_dir() -> Path:
    system = platform.system()
    home = Path.home()
    if system == "Windows":
        base = Path(os.getenv("APPDATA") or home / "AppData" / "Roaming")
    elif system == "Darwin":
        base = home / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME") or home / ".local" / "share")
    return base / "cliprecall"


def _to_float(value: Optional[str], default: float) -> float:
    if not value:
        return default
    return float(value)


def _to_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    return int(value)


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    key: str = DEFAULT_REDIS_KEY

    @classmethod
    def from_env(cls) -> "RedisConfig":
        key = os.getenv("CLIPRECALL_REDIS_KEY") or cls.key

        uri = os.getenv("REDIS_URI")
        if uri:
            return cls.from_uri(uri, key=key)

        return cls(
            host=os.getenv("REDIS_HOST", cls.host),
            port=_to_int(os.getenv("REDIS_PORT"), cls.port),
            db=_to_int(os.getenv("REDIS_DB"), cls.db),
            password=os.getenv("REDIS_PASSWORD") or None,
            key=key,
        )

    @classmethod
    def from_uri(cls, uri: str, key: str = DEFAULT_REDIS_KEY) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ValueError(f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        db_fragment = parsed.path.lstrip("/")
        return cls(
            host=parsed.hostname or cls.host,
            port=parsed.port or cls.port,
            db=int(db_fragment) if db_fragment else cls.db,
            password=parsed.password or None,
            key=key,
        )

    def create_store(self) -> RedisPreferenceStore:
        return RedisPreferenceStore(
            key=self.key,
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
        )


@dataclass(frozen=True)
class Settings:
    data_dir: Path = field(default_factory=default_data_dir)
    store: str = "json"
    poll_interval: float = DEFAULT_POLL_INTERVAL
    api_enabled: bool = True
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT
    redis: RedisConfig = field(default_factory=RedisConfig)

    def __post_init__(self) -> None:
        if self.store not in STORE_BACKENDS:
            raise ValueError(f"Unknown preference store {self.store!r}, expected one of {STORE_BACKENDS}")
        if self.poll_interval <= 0:
            raise ValueError("poll interval must be positive")

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / "preferences.json"

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Settings":
        load_dotenv(env_path or find_dotenv(usecwd=True))

        data_dir = os.getenv("CLIPRECALL_DATA_DIR")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else default_data_dir(),
            store=(os.getenv("CLIPRECALL_STORE") or "json").strip().lower(),
            poll_interval=_to_float(os.getenv("CLIPRECALL_POLL_INTERVAL"), DEFAULT_POLL_INTERVAL),
            api_host=os.getenv("CLIPRECALL_API_HOST") or DEFAULT_API_HOST,
            api_port=_to_int(os.getenv("CLIPRECALL_API_PORT"), DEFAULT_API_PORT),
            redis=RedisConfig.from_env(),
        )
