"""Configuration loading from CLI args and environment variables."""

import logging
import os
from dataclasses import dataclass

DEFAULT_CURSOR_IDLE_SECONDS = 300.0


class ConfigError(Exception):
    """Fatal startup problem: missing file, bad YAML, bad regex."""


@dataclass(frozen=True)
class Config:
    log_file: str
    config_file: str
    max_duration: float | None = None
    from_beginning: bool = False
    host: str = "127.0.0.1"
    port: int = 3030
    static_dir: str | None = None
    poll_interval: float = 0.05
    chunk_size: int = 10 * 1024
    stats_period: float = 5.0
    cursor_idle_seconds: float = DEFAULT_CURSOR_IDLE_SECONDS


def resolve_log_level(name: str) -> int:
    """Map a level name such as "debug" to its logging constant."""
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"LOG_LEVEL {name!r} is not a logging level")
    return level


def _env(name: str, default, cast):
    """Read env var *name* through *cast*; malformed values raise ConfigError."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name}={raw!r} is not a valid {cast.__name__}") from None


def load_config(cli_args) -> Config:
    """Build Config from parsed CLI args, with env vars for tuning knobs.

    Raises ConfigError if the log or config file is not a regular file.
    """
    for label, path in (("log file", cli_args.log_file), ("config file", cli_args.config)):
        if not os.path.isfile(path):
            raise ConfigError(f"{label} {path} is not a file")

    max_duration = cli_args.max_duration
    if max_duration is not None and max_duration <= 0:
        raise ConfigError(f"max duration must be positive, got {max_duration}")

    # Idle cursors outlive the retention window by default.
    idle_default = max_duration if max_duration is not None else DEFAULT_CURSOR_IDLE_SECONDS

    return Config(
        log_file=cli_args.log_file,
        config_file=cli_args.config,
        max_duration=max_duration,
        from_beginning=cli_args.from_beginning,
        host=cli_args.host or os.environ.get("HTTP_HOST", Config.host),
        port=cli_args.port or _env("HTTP_PORT", Config.port, int),
        static_dir=cli_args.static_dir,
        poll_interval=_env("POLL_INTERVAL", Config.poll_interval, float),
        chunk_size=_env("READ_CHUNK_SIZE", Config.chunk_size, int),
        stats_period=_env("STATS_PERIOD", Config.stats_period, float),
        cursor_idle_seconds=_env("CURSOR_IDLE_SECONDS", idle_default, float),
    )
