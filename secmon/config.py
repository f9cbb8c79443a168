"""Runtime configuration: thresholds, analyzer limits, severity cut-offs.

Loaded once at startup from a YAML file (default: the thresholds.yml that
ships with the package).  Any field can be overridden from the environment
as SECMON_<FIELD_NAME>, e.g. SECMON_MAX_FAILED_ATTEMPTS=3.  Invalid or
missing values raise ConfigError immediately; there is no partial config.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from secmon.severity import SeverityPolicy

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "thresholds.yml"

_ENV_PREFIX = "SECMON_"


class ConfigError(ValueError):
    """Invalid or missing configuration. Fatal at startup."""


def _require_positive(owner: str, name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{owner}.{name} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{owner}.{name} must be positive, got {value!r}")


@dataclass(frozen=True)
class Thresholds:
    max_failed_attempts: int
    time_window: float
    max_orders_per_user: int
    max_requests_per_ip: int
    address_cooling_period: float
    account_cooling_period: float

    def __post_init__(self):
        for f in fields(self):
            _require_positive("thresholds", f.name, getattr(self, f.name))


@dataclass(frozen=True)
class AnalysisSettings:
    window_seconds: float = 60
    rapid_request_limit: int = 20
    endpoint_scan_limit: int = 10

    def __post_init__(self):
        for f in fields(self):
            _require_positive("analysis", f.name, getattr(self, f.name))


@dataclass(frozen=True)
class Settings:
    thresholds: Thresholds
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    severity: SeverityPolicy = field(default_factory=SeverityPolicy)
    sweep_interval: float = 60
    alert_queue_size: int = 1000

    def __post_init__(self):
        _require_positive("settings", "sweep_interval", self.sweep_interval)
        _require_positive("settings", "alert_queue_size", self.alert_queue_size)
        for f in fields(self.severity):
            _require_positive("severity", f.name, getattr(self.severity, f.name))


def load_settings(path: str | Path | None = None,
                  environ: dict | None = None) -> Settings:
    """Parse *path* (or the packaged defaults), apply env overrides, validate."""
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    with open(path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path.name}: invalid YAML ({e})") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name}: top level must be a mapping")
    if "thresholds" not in raw:
        raise ConfigError(f"{path.name}: missing required section 'thresholds'")

    environ = os.environ if environ is None else environ
    thresholds = _build(Thresholds, raw["thresholds"], environ,
                        f"{path.name}: thresholds", required=True)
    analysis = _build(AnalysisSettings, raw.get("analysis") or {}, environ,
                      f"{path.name}: analysis")
    severity = _build(SeverityPolicy, raw.get("severity") or {}, environ,
                      f"{path.name}: severity")
    top = {
        "sweep_interval": raw.get("sweep_interval", 60),
        "alert_queue_size": raw.get("alert_queue_size", 1000),
    }
    for name in top:
        override = environ.get(_ENV_PREFIX + name.upper())
        if override is not None:
            top[name] = _coerce(name, override)

    try:
        return Settings(thresholds=thresholds, analysis=analysis,
                        severity=severity, **top)
    except TypeError as e:
        raise ConfigError(str(e)) from e


def _build(cls, section, environ, where, required=False):
    if not isinstance(section, dict):
        raise ConfigError(f"{where} must be a mapping")
    unknown = set(section) - {f.name for f in fields(cls)}
    if unknown:
        raise ConfigError(f"{where}: unknown field(s) {sorted(unknown)}")

    values = dict(section)
    for f in fields(cls):
        override = environ.get(_ENV_PREFIX + f.name.upper())
        if override is not None:
            values[f.name] = _coerce(f.name, override)
        if required and f.name not in values:
            raise ConfigError(f"{where}: missing required field '{f.name}'")
    return cls(**values)


def _coerce(name, raw: str):
    try:
        number = float(raw)
    except ValueError:
        raise ConfigError(f"{_ENV_PREFIX}{name.upper()} must be numeric, got {raw!r}")
    return int(number) if number.is_integer() else number
