"""KML Georeferencing Engine.

Turns KML / KMZ ground overlays into georeferenced raster maps: parses
the documents, derives the geo / image / screen coordinate transforms,
ranks maps by proximity to a GPS fix, fits overlay geometry from
user-picked tie points, and corrects GPS altitude with a geoid table.
"""

__version__ = "0.1.0"
