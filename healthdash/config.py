import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import find_dotenv, load_dotenv

# --- Settings ---

RANGE_LABELS = ("Week", "Month", "6 Months")
ANCHORS = ("export", "now")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    user_name: str = "there"
    export_path: Path | None = None
    timezone: str | None = None
    default_range: str = "Month"
    anchor: str = "export"
    log_level: str = "INFO"


def load_settings(env_file=None):
    """
    Build Settings from HEALTHDASH_* environment variables.
    A .env file (env_file, or the nearest one from the cwd upwards) is
    loaded first without overriding variables that are already set.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    export_path = os.environ.get("HEALTHDASH_EXPORT_PATH") or None
    timezone = os.environ.get("HEALTHDASH_TIMEZONE") or None
    default_range = os.environ.get("HEALTHDASH_DEFAULT_RANGE", "Month")
    anchor = os.environ.get("HEALTHDASH_ANCHOR", "export").lower()
    log_level = os.environ.get("HEALTHDASH_LOG_LEVEL", "INFO").upper()

    if timezone:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone: {timezone}") from e
    if default_range not in RANGE_LABELS:
        raise ConfigError(f"HEALTHDASH_DEFAULT_RANGE must be one of {RANGE_LABELS}, got {default_range!r}")
    if anchor not in ANCHORS:
        raise ConfigError(f"HEALTHDASH_ANCHOR must be one of {ANCHORS}, got {anchor!r}")
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"Unknown log level: {log_level}")

    return Settings(
        user_name=os.environ.get("HEALTHDASH_USER_NAME", "there"),
        export_path=Path(export_path).expanduser() if export_path else None,
        timezone=timezone,
        default_range=default_range,
        anchor=anchor,
        log_level=log_level,
    )


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
