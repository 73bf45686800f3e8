from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from sujood.context import PrayerContext

PROVIDER_KINDS = ("adhan", "aladhan")

_DEFAULT_DATA_DIR = Path("~/.local/share/sujood")


class ConfigError(ValueError):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class LocationConfig:
    name: str
    latitude: float
    longitude: float
    calc_method: str
    madhab: str
    timezone_offset_minutes: int


@dataclass(frozen=True)
class ProviderConfig:
    kind: str
    base_url: str
    timeout_seconds: int
    max_retries: int


@dataclass(frozen=True)
class CacheConfig:
    dir: Path
    days_ahead: int


@dataclass(frozen=True)
class RecordsConfig:
    dir: Path


@dataclass(frozen=True)
class LoggingConfig:
    file_path: str


@dataclass(frozen=True)
class AppConfig:
    location: LocationConfig
    provider: ProviderConfig
    cache: CacheConfig
    records: RecordsConfig
    logging: LoggingConfig

    def context(self) -> PrayerContext:
        # Raises InvalidContext; kept separate from load() so the CLI can report it.
        return PrayerContext(
            latitude=self.location.latitude,
            longitude=self.location.longitude,
            method=self.location.calc_method,
            madhab=self.location.madhab,
            utc_offset_minutes=self.location.timezone_offset_minutes,
        )


DEFAULTS: Dict[str, Any] = {
    "location": {"name": ""},
    "provider": {
        "kind": "adhan",
        "base_url": "https://api.aladhan.com",
        "timeout_seconds": 8,
        "max_retries": 2,
    },
    "cache": {"dir": str(_DEFAULT_DATA_DIR / "cache"), "days_ahead": 7},
    "records": {"dir": str(_DEFAULT_DATA_DIR / "records")},
    "logging": {"file_path": str(_DEFAULT_DATA_DIR / "sujood.log")},
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read config file: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected mapping at root of config file: {path}")
    return data


class ConfigLoader:
    def __init__(self, root_dir: Path | None = None) -> None:
        self._root_dir = root_dir

    def load(self) -> AppConfig:
        root_dir = self.resolve_root_dir()
        config_path = root_dir / "config.yml"
        if not config_path.exists():
            raise ConfigError(f"Missing base config file: {config_path}")

        merged = _deep_merge(DEFAULTS, _load_yaml(config_path))

        config_d = root_dir / "config.d"
        if config_d.exists():
            for path in sorted(config_d.glob("*.yml")):
                merged = _deep_merge(merged, _load_yaml(path))

        local_path = root_dir / "local.yml"
        if local_path.exists():
            merged = _deep_merge(merged, _load_yaml(local_path))

        config = self._build_config(merged)
        self._validate(config)
        return config

    def resolve_root_dir(self) -> Path:
        if self._root_dir is not None:
            return self._root_dir
        env_dir = os.getenv("SUJOOD_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "sujood"

    def _build_config(self, data: Dict[str, Any]) -> AppConfig:
        try:
            location_data = data["location"]
            provider_data = data["provider"]
            cache_data = data["cache"]
            records_data = data["records"]
            logging_data = data["logging"]
        except KeyError as exc:
            raise ConfigError(f"Missing config section: {exc.args[0]}") from exc

        try:
            location = LocationConfig(
                name=str(location_data.get("name", "")),
                latitude=float(location_data["latitude"]),
                longitude=float(location_data["longitude"]),
                calc_method=str(location_data["calc_method"]),
                madhab=str(location_data["madhab"]),
                timezone_offset_minutes=int(location_data["timezone_offset_minutes"]),
            )
            provider = ProviderConfig(
                kind=str(provider_data["kind"]),
                base_url=str(provider_data["base_url"]),
                timeout_seconds=int(provider_data["timeout_seconds"]),
                max_retries=int(provider_data["max_retries"]),
            )
            cache = CacheConfig(
                dir=Path(str(cache_data["dir"])).expanduser(),
                days_ahead=int(cache_data["days_ahead"]),
            )
            records = RecordsConfig(dir=Path(str(records_data["dir"])).expanduser())
            logging_config = LoggingConfig(
                file_path=str(Path(str(logging_data["file_path"])).expanduser())
            )
        except KeyError as exc:
            raise ConfigError(f"Missing config key: {exc.args[0]}") from exc
        except (TypeError, ValueError, AttributeError) as exc:
            raise ConfigError(f"Invalid config value: {exc}") from exc

        return AppConfig(
            location=location,
            provider=provider,
            cache=cache,
            records=records,
            logging=logging_config,
        )

    def _validate(self, config: AppConfig) -> None:
        if config.provider.kind not in PROVIDER_KINDS:
            raise ConfigError(f"Unknown provider kind: {config.provider.kind}")
        if config.provider.timeout_seconds <= 0:
            raise ConfigError("provider.timeout_seconds must be positive")
        if config.provider.max_retries < 0:
            raise ConfigError("provider.max_retries must not be negative")
        if config.cache.days_ahead < 0:
            raise ConfigError("cache.days_ahead must not be negative")
