import logging
import os
import sys
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

from htop_gear.engine.data_models import DisplayMode
from htop_gear.errors import ConfigError

# Load environment variables from .env file
load_dotenv()

SAMPLERS = ("psutil", "ps")
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class RaceOptions:
    max_lanes: int = 10
    aggressive_mode: bool = False
    tick_interval: float = 0.6
    display_mode: DisplayMode = DisplayMode.COMPACT
    sampler: str = "psutil"
    seed: Optional[int] = None

    def validate(self) -> "RaceOptions":
        if self.max_lanes < 1:
            raise ConfigError(f"max_lanes must be at least 1, got {self.max_lanes}")
        if self.tick_interval <= 0:
            raise ConfigError(f"tick interval must be positive, got {self.tick_interval}")
        if self.sampler not in SAMPLERS:
            raise ConfigError(f"Unknown sampler '{self.sampler}', expected one of {', '.join(SAMPLERS)}")
        return self

    def override(self, **changes) -> "RaceOptions":
        """Returns a copy with every non-None change applied."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied).validate()


def _env_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc


def load_options(env: Optional[Mapping[str, str]] = None) -> RaceOptions:
    """
    Builds RaceOptions from HTOP_GEAR_* environment variables.
    Unset variables keep their defaults.
    """
    env = os.environ if env is None else env
    options = RaceOptions()

    max_lanes = _env_int(env, "HTOP_GEAR_MAX_LANES")
    tick_ms = _env_int(env, "HTOP_GEAR_TICK_MS")
    seed = _env_int(env, "HTOP_GEAR_SEED")

    aggressive = None
    if env.get("HTOP_GEAR_AGGRESSIVE") is not None:
        aggressive = _env_flag(env["HTOP_GEAR_AGGRESSIVE"])

    display_mode = None
    if env.get("HTOP_GEAR_DISPLAY"):
        try:
            display_mode = DisplayMode.from_str(env["HTOP_GEAR_DISPLAY"])
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    sampler = env.get("HTOP_GEAR_SAMPLER") or None
    if sampler is not None:
        sampler = sampler.strip().lower()

    return options.override(
        max_lanes=max_lanes,
        aggressive_mode=aggressive,
        tick_interval=tick_ms / 1000.0 if tick_ms is not None else None,
        display_mode=display_mode,
        sampler=sampler,
        seed=seed,
    )


def configure_logging(env: Optional[Mapping[str, str]] = None) -> None:
    """
    Sends log records to HTOP_GEAR_LOG_FILE when set, stderr otherwise.
    stdout is reserved for the race view.
    """
    env = os.environ if env is None else env
    level_name = (env.get("HTOP_GEAR_LOG_LEVEL") or "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level '{level_name}'")

    log_file = env.get("HTOP_GEAR_LOG_FILE")
    if log_file:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
