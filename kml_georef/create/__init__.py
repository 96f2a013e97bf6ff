"""Map creation: tie-point fitting and KML / KMZ output."""
