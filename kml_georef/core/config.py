"""Engine configuration loaded from environment variables.

All configuration values have sensible defaults. The embedding
application (or its settings layer) is the source of truth and exports
them as environment variables before building the engine.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration is caught at startup rather
    than during a catalog scan.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from kml_georef.core.constants import (
    DEFAULT_GEOID_DATA_PATH,
    DEFAULT_MAP_NAME,
    DEFAULT_MAPS_DIR,
    NEAR_MAP_DISTANCE_M,
)
from kml_georef.core.exceptions import ValidationError


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class GeorefConfig:
    """Immutable engine configuration.

    Attributes:
        maps_dir: Directory scanned by the map catalog for KML / KMZ files.
        geoid_data_path: Path of the 181 x 360 geoid height grid.
        near_distance_m: Distance (metres) under which a map that does
            not contain the position is still considered "near".
        default_map_name: Name given to overlays whose document and
            folder are both unnamed.
    """

    maps_dir: str = DEFAULT_MAPS_DIR
    geoid_data_path: str = DEFAULT_GEOID_DATA_PATH
    near_distance_m: float = NEAR_MAP_DISTANCE_M
    default_map_name: str = DEFAULT_MAP_NAME

    @classmethod
    def from_env(cls) -> GeorefConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``NEAR_MAP_DISTANCE_M=abc``).
        """
        config = cls(
            maps_dir=os.getenv("MAPS_DIR", DEFAULT_MAPS_DIR),
            geoid_data_path=os.getenv("GEOID_DATA_PATH", DEFAULT_GEOID_DATA_PATH),
            near_distance_m=float(os.getenv("NEAR_MAP_DISTANCE_M", str(NEAR_MAP_DISTANCE_M))),
            default_map_name=os.getenv("DEFAULT_MAP_NAME", DEFAULT_MAP_NAME),
        )
        _validate(config)
        return config


def _validate(config: GeorefConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.near_distance_m <= 0:
        raise ConfigValidationError(
            "NEAR_MAP_DISTANCE_M",
            config.near_distance_m,
            "must be > 0 (metres)",
        )

    if not config.maps_dir:
        raise ConfigValidationError("MAPS_DIR", config.maps_dir, "must not be empty")

    if not config.default_map_name.strip():
        raise ConfigValidationError(
            "DEFAULT_MAP_NAME",
            config.default_map_name,
            "must not be blank",
        )
