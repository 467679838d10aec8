"""Client configuration from YAML file, environment and CLI overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "tulip"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "tulip.yaml"
DEFAULT_HISTORY_FILE = CONFIG_DIR / "history"
DEFAULT_SITE = "https://api.zulip.com/v1"

_TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1", "on"})
_FALSE_VALUES = frozenset({"false", "f", "no", "n", "0", "off"})

# Environment variables per field, first match wins.
_ENV_VARS: dict[str, tuple[str, ...]] = {
    "email": ("TULIP_ZULIP_EMAIL", "ZULIP_EMAIL"),
    "api_key": ("TULIP_ZULIP_API_KEY", "ZULIP_API_KEY"),
    "site": ("TULIP_ZULIP_URL", "ZULIP_URL"),
    "secure": ("TULIP_VERIFY_SSL",),
    "notifications": ("TULIP_NOTIFICATIONS",),
    "history_file": ("TULIP_HISTORY_FILE",),
}


def parse_bool(value: str) -> bool:
    """Parse a user-supplied boolean string."""
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"{value} is not a valid boolean value")


@dataclass(frozen=True)
class Context:
    """Immutable connection details handed to the session at start time."""

    email: str
    api_key: str
    base_url: str
    secure: bool = True


@dataclass
class ClientConfig:
    """Application configuration.

    Values are layered: defaults, then an optional YAML mapping, then
    environment variables, then explicit overrides from the command line.

    Usage::

        config = ClientConfig.load(path="~/.config/tulip/tulip.yaml")
        config.validate()
        context = config.to_context()
    """

    email: str = ""
    api_key: str = ""
    site: str = DEFAULT_SITE
    secure: bool = True
    notifications: bool = True
    prompt: str = "\U0001f337"
    history_file: str = str(DEFAULT_HISTORY_FILE)
    debug: bool = False
    config_file: str | None = field(default=None, repr=False)

    # Keys accepted from YAML and ``config set``
    _SETTABLE = frozenset(
        {"email", "api_key", "site", "secure", "notifications", "prompt", "history_file"}
    )

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        *,
        overrides: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> ClientConfig:
        """Build a config from file, environment and overrides.

        A ``path`` given explicitly must exist and hold a YAML mapping. When
        omitted, ``DEFAULT_CONFIG_FILE`` is used if present.
        """
        config = cls()
        if path is not None:
            config = cls.from_file(path)
        elif DEFAULT_CONFIG_FILE.is_file():
            config = cls.from_file(DEFAULT_CONFIG_FILE)

        config.apply_env(os.environ if environ is None else environ)
        for key, value in (overrides or {}).items():
            if value is None:
                continue
            if key not in {f.name for f in fields(cls)}:
                raise ConfigError(f"No key found matching {key}")
            setattr(config, key, value)
        config.site = config.site.rstrip("/")
        return config

    @classmethod
    def from_file(cls, path: str | Path) -> ClientConfig:
        """Load config from a YAML file."""
        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file could not be read: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Configuration file could not be read ({path}): {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a YAML mapping: {path}")
        config = cls._from_dict(data)
        config.config_file = str(path)
        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        config = cls()
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name == "apikey":
                name = "api_key"
            if name not in cls._SETTABLE:
                continue
            if isinstance(getattr(config, name), bool) and not isinstance(value, bool):
                value = parse_bool(str(value))
            setattr(config, name, value if isinstance(value, bool) else str(value))
        return config

    def apply_env(self, environ: Mapping[str, str]) -> None:
        """Overlay values from environment variables."""
        for name, variables in _ENV_VARS.items():
            for variable in variables:
                raw = environ.get(variable)
                if raw is None or raw == "":
                    continue
                self.set_value(name, raw)
                break

    def set_value(self, key: str, raw: str) -> None:
        """Set a field from its string form (used by ``config set``)."""
        name = key.strip().lower().replace("-", "_")
        if name == "apikey":
            name = "api_key"
        if name not in self._SETTABLE:
            raise ConfigError(f"No key found matching {key}")
        if isinstance(getattr(self, name), bool):
            setattr(self, name, parse_bool(raw))
        else:
            setattr(self, name, raw)
        if name == "site":
            self.site = self.site.rstrip("/")

    def validate(self) -> None:
        """Raise ConfigError when the config cannot be used to connect."""
        if not self.email or not self.api_key:
            raise ConfigError(
                "Missing credentials. Set ZULIP_EMAIL and ZULIP_API_KEY, or pass "
                "--email and --api-key."
            )
        if self.secure and not self.site.lower().startswith("https://"):
            raise ConfigError(
                "Base URL is not https but secure is set to true. "
                "Either pass --insecure or make sure --site begins with https."
            )

    def show(self) -> list[tuple[str, str]]:
        """Return displayable (name, value) pairs, with the API key masked."""
        rows: list[tuple[str, str]] = []
        for name in sorted(self._SETTABLE):
            value = getattr(self, name)
            if name == "api_key" and value:
                value = value[:4] + "…"
            rows.append((name, str(value)))
        return rows

    def to_context(self) -> Context:
        return Context(
            email=self.email,
            api_key=self.api_key,
            base_url=self.site.rstrip("/"),
            secure=self.secure,
        )
