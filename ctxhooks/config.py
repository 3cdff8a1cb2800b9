"""
EngineConfig: configuration for the context engine.

This module provides:

- find_config_file: Walk up directories to locate .ctxhooks.toml
- EngineConfig: Typed engine settings with load/from_dict constructors

Configuration lives in the ``[engine]`` table of ``.ctxhooks.toml``:

    [engine]
    fork_mode = "reference"     # or "copy"
    buoy_sharing = "private"    # or "shared"
    log_level = "DEBUG"         # optional

Example:
    >>> config = EngineConfig.load()
    >>> config.fork_mode
    'reference'
    >>> config.apply_logging()
    >>> engine = Engine(config)
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ctxhooks.toml"

FORK_MODES = ("reference", "copy")
BUOY_SHARING = ("private", "shared")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """
    Walk up from *start_dir* to find `.ctxhooks.toml`.

    Starts at *start_dir* (default: current working directory) and checks each
    ancestor directory until the filesystem root is reached.

    Args:
        start_dir: Directory to start searching from. Defaults to ``Path.cwd()``.

    Returns:
        Path to the config file, or ``None`` if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _check_choice(name: str, value: Any, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        raise ValueError(
            f"Invalid {name} {value!r}. Allowed values: {', '.join(allowed)}"
        )


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings for an :class:`~ctxhooks.engine.Engine`.

    Attributes:
        fork_mode: ``"reference"`` makes forks resolve missing state through
            their parent until overridden. ``"copy"`` snapshots the parent's
            resolved forkable state into the fork at fork time.
        buoy_sharing: Default sharing for buoys built without an explicit
            ``shared=`` argument. ``"private"`` binds unforkable state to the
            exact hook identity; ``"shared"`` binds it to the owner hook so
            clones of that hook see the same value within a context.
        log_level: Level for the ``ctxhooks`` logger, applied by
            :meth:`apply_logging`.
    """

    fork_mode: str = "reference"
    buoy_sharing: str = "private"
    log_level: str | None = None

    def __post_init__(self) -> None:
        _check_choice("fork_mode", self.fork_mode, FORK_MODES)
        _check_choice("buoy_sharing", self.buoy_sharing, BUOY_SHARING)
        if self.log_level is not None:
            _check_choice("log_level", self.log_level, LOG_LEVELS)

    @property
    def shared_buoys(self) -> bool:
        """True if buoys share state across clones by default."""
        return self.buoy_sharing == "shared"

    def apply_logging(self) -> int | None:
        """
        Set the ``ctxhooks`` logger level to :attr:`log_level`.

        Nothing happens when ``log_level`` is unset. Creating an engine never
        touches logging; call this once during application setup.

        Returns:
            The previous level of the ``ctxhooks`` logger, or None if
            ``log_level`` is unset.
        """
        if self.log_level is None:
            return None
        package_logger = logging.getLogger("ctxhooks")
        previous = package_logger.level
        package_logger.setLevel(self.log_level)
        return previous

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """
        Create an :class:`EngineConfig` from a parsed TOML dict.

        Reads the ``[engine]`` table. Unknown keys are logged and ignored.

        Args:
            data: Parsed TOML data.

        Returns:
            The validated config.

        Raises:
            ValueError: If a setting has an unsupported value.
        """
        engine_raw = dict(data.get("engine", {}))
        known = {f.name for f in fields(cls)}

        for key in sorted(engine_raw.keys() - known):
            logger.warning("Ignoring unknown [engine] setting %r", key)
            engine_raw.pop(key)

        log_level = engine_raw.get("log_level")
        if isinstance(log_level, str):
            engine_raw["log_level"] = log_level.upper()

        return cls(**engine_raw)

    @classmethod
    def load(cls, start_dir: Path | None = None) -> EngineConfig:
        """
        Find and load engine configuration.

        Args:
            start_dir: Directory to start searching from.

        Returns:
            The loaded config.

        Raises:
            FileNotFoundError: If no ``.ctxhooks.toml`` is found.
        """
        config_path = find_config_file(start_dir)
        if config_path is None:
            raise FileNotFoundError(
                f"Could not find {CONFIG_FILENAME} in {start_dir or Path.cwd()} "
                f"or any parent directory"
            )

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        logger.debug("Loaded engine config from %s", config_path)
        return cls.from_dict(data)

    @classmethod
    def discover(cls, start_dir: Path | None = None) -> EngineConfig:
        """Like :meth:`load`, but fall back to defaults when no file exists."""
        try:
            return cls.load(start_dir)
        except FileNotFoundError:
            return cls()
