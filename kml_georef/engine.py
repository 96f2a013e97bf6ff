"""Composition root.

Builds the long-lived engine objects once from configuration and hands
them to the embedding application by reference. There are no module
level singletons: two engines (for example in tests) never share a
catalog snapshot or a geoid cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from kml_georef.catalog.map_catalog import MapCatalog
from kml_georef.core.config import GeorefConfig
from kml_georef.create.warp_estimator import WarpEstimator
from kml_georef.geoid.height_table import GeoidHeightTable
from kml_georef.transforms.display_state import DisplayState

logger = logging.getLogger("kml_georef.engine")


@dataclass(frozen=True, slots=True)
class GeorefEngine:
    """Shared engine services.

    Attributes:
        config: Configuration the services were built from.
        catalog: Maps available in ``config.maps_dir``.
        geoid: Geoid height table read from ``config.geoid_data_path``.
        warp_estimator: Geometry fitting for map creation.
    """

    config: GeorefConfig
    catalog: MapCatalog
    geoid: GeoidHeightTable
    warp_estimator: WarpEstimator = field(default_factory=WarpEstimator)

    @classmethod
    def from_config(cls, config: GeorefConfig | None = None) -> GeorefEngine:
        """Build an engine; configuration defaults to :meth:`GeorefConfig.from_env`."""
        config = config or GeorefConfig.from_env()
        engine = cls(
            config=config,
            catalog=MapCatalog(Path(config.maps_dir), config=config),
            geoid=GeoidHeightTable(Path(config.geoid_data_path)),
        )
        logger.info(
            "Engine ready | maps_dir=%s | geoid=%s | near_distance_m=%.0f",
            config.maps_dir,
            config.geoid_data_path,
            config.near_distance_m,
        )
        return engine

    def new_display_state(self) -> DisplayState:
        """Create the display state for one rendering context."""
        return DisplayState()
