"""Scoped style tables and the marker icon post-pass.

KML resolves a placemark's ``styleUrl`` in two levels: a ``StyleMap``
maps a logical id to a style id, and a ``Style`` maps a style id to an
``IconStyle``. Tables belong to the Document or Folder that declares
them. Markers keep only their ``style_url`` until the enclosing scope
is complete; :meth:`StyleScope.resolve` then fills in ``icon``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from kml_georef.models.feature import Folder, Marker

if TYPE_CHECKING:
    from kml_georef.models.feature import Feature, IconStyle


def style_id(style_url: str) -> str:
    """Return the id part of a ``styleUrl`` (text after the last ``#``)."""
    return style_url.rsplit("#", 1)[-1].strip()


@dataclass
class StyleScope:
    """Style tables declared by one Document or Folder."""

    icon_styles: dict[str, IconStyle] = field(default_factory=dict)
    style_maps: dict[str, str] = field(default_factory=dict)

    def lookup(self, style_url: str) -> IconStyle | None:
        key = style_id(style_url)
        if not key:
            return None
        if key in self.icon_styles:
            return self.icon_styles[key]
        mapped = self.style_maps.get(key)
        if mapped is None:
            return None
        return self.icon_styles.get(mapped)

    def resolve(self, features: list[Feature]) -> list[Feature]:
        """Return *features* with unresolved marker icons looked up in this scope.

        Descends into folders so a Document's styles reach markers that
        their own Folder could not resolve.
        """
        if not self.icon_styles:
            return features
        resolved: list[Feature] = []
        for feature in features:
            if isinstance(feature, Marker):
                resolved.append(self._resolve_marker(feature))
            elif isinstance(feature, Folder):
                children = tuple(
                    self._resolve_marker(child) if isinstance(child, Marker) else child
                    for child in feature.children
                )
                resolved.append(replace(feature, children=children))
            else:
                resolved.append(feature)
        return resolved

    def _resolve_marker(self, marker: Marker) -> Marker:
        if marker.icon is not None or not marker.style_url:
            return marker
        icon = self.lookup(marker.style_url)
        return marker if icon is None else replace(marker, icon=icon)
