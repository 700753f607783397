"""Session configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, Iterable, Literal, Optional, Union

import yaml
from pydantic import AnyUrl, BaseModel, Field, NonNegativeFloat, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PING_MESSAGE = "ping"

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/wsession/session.yaml"),
    Path("/etc/wsession/session.yml"),
    Path("./config/session.yaml"),
    Path("./config/session.yml"),
)


class HeartbeatOptions(BaseModel):
    """Liveness probe settings."""

    message: Union[str, bytes] = Field(
        default=DEFAULT_PING_MESSAGE,
        description="Probe payload; inbound frames equal to it are treated as echoes.",
    )
    interval: PositiveFloat = Field(
        default=1.0,
        description="Seconds between probes.",
    )
    pong_timeout: PositiveFloat = Field(
        default=1.0,
        description="Seconds to wait for any inbound traffic after a probe.",
    )


class ReconnectOptions(BaseModel):
    """Automatic reconnection settings."""

    retries: Union[int, Callable[[], bool]] = Field(
        default=-1,
        description="Retry cap (negative for unlimited) or a predicate returning True to retry.",
    )
    delay: NonNegativeFloat = Field(
        default=1.0,
        description="Fixed delay in seconds before each reconnect attempt.",
    )
    on_failed: Optional[Callable[[], None]] = Field(
        default=None,
        description="Invoked once retries are exhausted.",
        exclude=True,
    )


class SessionSettings(BaseSettings):
    """Validated settings for a reconnecting session."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="WSESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Connection
    url: AnyUrl | None = Field(
        default=None,
        description="Target WebSocket endpoint. Without it no connection is attempted.",
    )
    protocols: list[str] = Field(
        default_factory=list,
        description="Sub-protocols offered during the handshake, in preference order.",
    )
    transport: Literal["websocket", "dummy"] = Field(
        default="websocket",
        description="Transport implementation used by the command line entrypoint.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Handshake deadline for the websocket transport.",
    )
    close_timeout_seconds: PositiveFloat = Field(
        default=2.0,
        description="Closing handshake deadline for the websocket transport.",
    )

    # Lifecycle
    immediate: bool = Field(
        default=True,
        description="Open the connection as soon as the session is constructed.",
    )
    auto_close: bool = Field(
        default=True,
        description="Close the session when the hosting process is asked to shut down.",
    )

    # Reliability
    heartbeat: bool | HeartbeatOptions = Field(
        default=False,
        description="Enable liveness probes; True uses the default probe settings.",
    )
    auto_reconnect: bool | ReconnectOptions = Field(
        default=False,
        description="Enable reconnection after unexpected closes; True uses the defaults.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the command line entrypoint.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    def heartbeat_options(self) -> HeartbeatOptions | None:
        """Return the effective heartbeat options, or None when disabled."""

        if self.heartbeat is True:
            return HeartbeatOptions()
        if self.heartbeat is False:
            return None
        return self.heartbeat

    def reconnect_options(self) -> ReconnectOptions | None:
        """Return the effective reconnect options, or None when disabled."""

        if self.auto_reconnect is True:
            return ReconnectOptions()
        if self.auto_reconnect is False:
            return None
        return self.auto_reconnect

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[SessionSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[SessionSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = SessionSettings._resolve_candidate_paths()

        for path in candidates:
            data = SessionSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("WSESSION_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read session config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid session config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Session config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> SessionSettings:
    """Return memoized session settings."""

    return SessionSettings()
