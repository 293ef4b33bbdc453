"""Engine configuration loader.

Loads configuration from ~/.pronounguard/config.json, applies environment
overrides and validates the result.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from .reminders import DEFAULT_CUSTOM_MESSAGE, CorrectionTone
from .resolver import DEFAULT_CONFIDENCE_FLOOR, Aggregation
from .scanner import WINDOWS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".pronounguard" / "config.json"

KNOWN_SOURCES = ("pronoundb", "custom", "static")
ENV_PREFIX = "PRONOUNGUARD_"


class CorrectionMode(Enum):
    """How the engine acts on detected mismatches."""

    AUTO_CORRECT = "auto_correct"
    BLOCK_AND_WARN = "block_and_warn"
    PREVIEW = "preview"


@dataclass
class EngineConfig:
    """Configuration for the correction engine.

    Attributes:
        sources: Directory sources to try, in order.
        custom_endpoint: URL template with a {person_id} placeholder.
        static_labels: Manual person id -> label overrides.
        timeout_seconds: Per-source lookup timeout.
        cache_ttl_seconds: How long resolved labels stay cached.
        confidence_floor: Minimum person confidence for a correction.
        mode: What the engine does with corrections.
        window: Proximity policy name ('proximity' or 'correlation').
        strip_ignorable: Ignore code and block quotes when scanning.
        context_aware: Score confidence from surrounding words.
        aggregation: How candidate confidences combine per person.
        tone: Tone of reminder messages.
        custom_message: Template for the custom tone.
        window_minutes: Duplicate tracker window.
        max_per_window: Corrections allowed per key inside the window.
        sweep_interval_minutes: How often stale records are evicted.
    """

    sources: list[str] = field(default_factory=lambda: ["pronoundb"])
    custom_endpoint: str = ""
    static_labels: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 5.0
    cache_ttl_seconds: float = 300.0
    confidence_floor: int = DEFAULT_CONFIDENCE_FLOOR
    mode: CorrectionMode = CorrectionMode.AUTO_CORRECT
    window: str = "proximity"
    strip_ignorable: bool = True
    context_aware: bool = True
    aggregation: Aggregation = Aggregation.MAX
    tone: CorrectionTone = CorrectionTone.GENTLE
    custom_message: str = DEFAULT_CUSTOM_MESSAGE
    window_minutes: float = 60
    max_per_window: int = 2
    sweep_interval_minutes: float = 30

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise ValueError("; ".join(errors))

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty if valid)."""
        errors: list[str] = []

        unknown = [s for s in self.sources if s not in KNOWN_SOURCES]
        if unknown:
            errors.append(f"Unknown sources: {', '.join(unknown)}")

        if "custom" in self.sources and "{person_id}" not in self.custom_endpoint:
            errors.append("Custom endpoint must include the {person_id} placeholder")

        if self.timeout_seconds <= 0:
            errors.append("Timeout must be positive")

        if self.cache_ttl_seconds <= 0:
            errors.append("Cache TTL must be positive")

        if not 0 <= self.confidence_floor <= 100:
            errors.append("Confidence floor must be between 0 and 100")

        if self.window not in WINDOWS:
            errors.append(f"Window must be one of: {', '.join(sorted(WINDOWS))}")

        if not 1 <= self.window_minutes <= 1440:
            errors.append("Window minutes must be between 1 and 1440")

        if not 1 <= self.max_per_window <= 50:
            errors.append("Max corrections per window must be between 1 and 50")

        if self.sweep_interval_minutes <= 0:
            errors.append("Sweep interval must be positive")

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON structure."""
        return {
            "sources": list(self.sources),
            "custom_endpoint": self.custom_endpoint,
            "labels": dict(self.static_labels),
            "timeout_seconds": self.timeout_seconds,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "confidence_floor": self.confidence_floor,
            "mode": self.mode.value,
            "window": self.window,
            "strip_ignorable": self.strip_ignorable,
            "context_aware": self.context_aware,
            "aggregation": self.aggregation.value,
            "tone": self.tone.value,
            "custom_message": self.custom_message,
            "duplicates": {
                "window_minutes": self.window_minutes,
                "max_per_window": self.max_per_window,
                "sweep_interval_minutes": self.sweep_interval_minutes,
            },
        }


def load_config(config_path: Path | None = None) -> EngineConfig:
    """Load EngineConfig from a JSON file.

    The config file should have this structure:
    ```json
    {
      "sources": ["pronoundb", "custom"],
      "custom_endpoint": "https://example.org/pronouns/{person_id}",
      "labels": {"1234": "she/her"},
      "confidence_floor": 75,
      "mode": "auto_correct",
      "window": "proximity",
      "duplicates": {"window_minutes": 60, "max_per_window": 2}
    }
    ```

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        EngineConfig instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return EngineConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return EngineConfig()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return EngineConfig()

    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        return EngineConfig()

    return _parse_config(data)


def _enum_value(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Invalid %s '%s', using %s", enum_cls.__name__, value, default.value)
        return default


def _number(value: Any, default: float, low: float, high: float | None = None) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value < low or (high is not None and value > high):
        return default
    return value


def _parse_config(data: dict[str, Any]) -> EngineConfig:
    """Parse config dictionary into EngineConfig.

    Invalid values fall back to their defaults.
    """
    defaults = EngineConfig()

    sources = data.get("sources", defaults.sources)
    if not isinstance(sources, list):
        sources = defaults.sources
    sources = [s for s in sources if s in KNOWN_SOURCES]

    custom_endpoint = data.get("custom_endpoint", "")
    if not isinstance(custom_endpoint, str):
        custom_endpoint = ""
    if "custom" in sources and "{person_id}" not in custom_endpoint:
        logger.warning("Custom source enabled without a {person_id} endpoint, skipping it")
        sources = [s for s in sources if s != "custom"]

    labels = data.get("labels", {})
    if not isinstance(labels, dict):
        labels = {}
    labels = {str(k): v for k, v in labels.items() if isinstance(v, str)}

    window = data.get("window", defaults.window)
    if window not in WINDOWS:
        window = defaults.window

    custom_message = data.get("custom_message", defaults.custom_message)
    if not isinstance(custom_message, str):
        custom_message = defaults.custom_message

    duplicates = data.get("duplicates", {})
    if not isinstance(duplicates, dict):
        duplicates = {}

    return EngineConfig(
        sources=sources,
        custom_endpoint=custom_endpoint,
        static_labels=labels,
        timeout_seconds=_number(data.get("timeout_seconds"), defaults.timeout_seconds, 0.001),
        cache_ttl_seconds=_number(data.get("cache_ttl_seconds"), defaults.cache_ttl_seconds, 1),
        confidence_floor=int(_number(data.get("confidence_floor"), defaults.confidence_floor, 0, 100)),
        mode=_enum_value(CorrectionMode, data.get("mode", defaults.mode.value), defaults.mode),
        window=window,
        strip_ignorable=bool(data.get("strip_ignorable", defaults.strip_ignorable)),
        context_aware=bool(data.get("context_aware", defaults.context_aware)),
        aggregation=_enum_value(
            Aggregation, data.get("aggregation", defaults.aggregation.value), defaults.aggregation
        ),
        tone=_enum_value(CorrectionTone, data.get("tone", defaults.tone.value), defaults.tone),
        custom_message=custom_message,
        window_minutes=_number(duplicates.get("window_minutes"), defaults.window_minutes, 1, 1440),
        max_per_window=int(_number(duplicates.get("max_per_window"), defaults.max_per_window, 1, 50)),
        sweep_interval_minutes=_number(
            duplicates.get("sweep_interval_minutes"), defaults.sweep_interval_minutes, 0.001
        ),
    )


def config_from_env(base: EngineConfig | None = None) -> EngineConfig:
    """Apply PRONOUNGUARD_* environment overrides to a config.

    Raises:
        ValueError: If an override produces an invalid config.
    """
    config = base or EngineConfig()
    overrides: dict[str, Any] = {}

    sources = os.getenv(f"{ENV_PREFIX}SOURCES")
    if sources:
        overrides["sources"] = [s.strip() for s in sources.split(",") if s.strip()]

    endpoint = os.getenv(f"{ENV_PREFIX}CUSTOM_ENDPOINT")
    if endpoint:
        overrides["custom_endpoint"] = endpoint

    timeout = os.getenv(f"{ENV_PREFIX}TIMEOUT")
    if timeout:
        overrides["timeout_seconds"] = float(timeout)

    floor = os.getenv(f"{ENV_PREFIX}CONFIDENCE_FLOOR")
    if floor:
        overrides["confidence_floor"] = int(floor)

    mode = os.getenv(f"{ENV_PREFIX}MODE")
    if mode:
        overrides["mode"] = CorrectionMode(mode)

    window = os.getenv(f"{ENV_PREFIX}WINDOW")
    if window:
        overrides["window"] = window

    if not overrides:
        return config
    return replace(config, **overrides)


def save_config(config: EngineConfig, config_path: Path | None = None) -> None:
    """Save EngineConfig to a JSON file.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses DEFAULT_CONFIG_PATH if None.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w") as f:
            json.dump(config.to_dict(), f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise
