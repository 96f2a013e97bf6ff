"""Map catalog and the sources it reads maps from."""

from kml_georef.catalog.map_catalog import DistanceGroups, MapCatalog
from kml_georef.catalog.sources import KmlFileSource, KmzEntrySource

__all__ = ["DistanceGroups", "KmlFileSource", "KmzEntrySource", "MapCatalog"]
