"""
Configuration
Loads the JSON service configuration and merges it over the defaults
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import copy
import json
import os

from ..utils.sizes import gigabytes_to_bytes
from .errors import ConfigurationError

CONFIG_ENV_VAR = "WAREHOUSE_CONFIG"
DEFAULT_CONFIG_PATH = "configuration.json"


class Configuration:
    """Service settings read once at startup"""

    DEFAULT_SETTINGS: Dict[str, Any] = {
        # HTTP
        "listenHostname": "127.0.0.1",
        "listenPort": 8080,
        "externalHostname": "localhost",

        # Storage and logs
        "databasePath": "warehouse.sqlite3",
        "logPath": None,
        "logLevel": "INFO",

        # Sites: [{"name": ..., "username": ..., "password": ...}]
        "sites": [],
        "siteRequestTimeout": 25.0,

        # Download daemon
        "transmission": {
            "protocol": "http",
            "host": "127.0.0.1",
            "port": 9091,
            "path": "/transmission/rpc",
            "username": None,
            "password": None,
            "timeout": 30.0,
        },

        # Background tasks, intervals in seconds
        "subscriptionInterval": 600,
        "freeDiskSpace": {
            "path": "/",
            "min": 10,  # GiB
            "interval": 300,
        },

        # Limits
        "torrentSizeLimit": 20,  # GiB
        "maxSessionsPerUser": 3,
        "sessionMaxAge": 30 * 24 * 60 * 60,
    }

    def __init__(self, settings: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        self.path = path
        self._settings = self._merge(copy.deepcopy(self.DEFAULT_SETTINGS), settings or {})

    @staticmethod
    def resolve_path(path: Optional[Union[str, Path]] = None) -> Path:
        return Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Configuration":
        config_path = cls.resolve_path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f'Configuration file "{config_path}" does not exist.') from e
        except (OSError, ValueError) as e:
            raise ConfigurationError(f'Unable to read configuration file "{config_path}": {e}') from e
        if not isinstance(data, dict):
            raise ConfigurationError(f'Configuration file "{config_path}" must contain a JSON object.')
        return cls(data, path=config_path)

    @classmethod
    def _merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key] = cls._merge(base[key], value)
            else:
                base[key] = value
        return base

    def get(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)

    def _number(self, key: str, value: Any, kind=float):
        try:
            return kind(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f'Invalid value for "{key}": {value!r}') from None

    @property
    def listen_hostname(self) -> str:
        return str(self.get("listenHostname"))

    @property
    def listen_port(self) -> int:
        return self._number("listenPort", self.get("listenPort"), int)

    @property
    def external_hostname(self) -> str:
        return str(self.get("externalHostname") or "")

    @property
    def database_path(self) -> str:
        return str(self.get("databasePath"))

    @property
    def log_path(self) -> Optional[str]:
        return self.get("logPath") or None

    @property
    def log_level(self) -> str:
        return str(self.get("logLevel") or "INFO")

    @property
    def sites(self) -> List[Dict[str, Any]]:
        sites = self.get("sites") or []
        if not isinstance(sites, list):
            raise ConfigurationError('"sites" must be a list.')
        return sites

    @property
    def site_request_timeout(self) -> float:
        return self._number("siteRequestTimeout", self.get("siteRequestTimeout"))

    @property
    def transmission(self) -> Dict[str, Any]:
        return dict(self.get("transmission") or {})

    @property
    def subscription_interval(self) -> float:
        return self._number("subscriptionInterval", self.get("subscriptionInterval"))

    @property
    def free_disk_space(self) -> Dict[str, Any]:
        return dict(self.get("freeDiskSpace") or {})

    @property
    def free_disk_space_min_bytes(self) -> int:
        return gigabytes_to_bytes(self._number("freeDiskSpace.min", self.free_disk_space.get("min")))

    @property
    def torrent_size_limit(self) -> int:
        """Size ceiling in bytes"""
        return gigabytes_to_bytes(self._number("torrentSizeLimit", self.get("torrentSizeLimit")))

    @property
    def max_sessions_per_user(self) -> int:
        return self._number("maxSessionsPerUser", self.get("maxSessionsPerUser"), int)

    @property
    def session_max_age(self) -> int:
        return self._number("sessionMaxAge", self.get("sessionMaxAge"), int)
