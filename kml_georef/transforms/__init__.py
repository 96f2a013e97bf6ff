"""Coordinate transforms: geo <-> image <-> screen.

- projective: 3x3 homogeneous matrices and the correspondence solver
- geo_to_image: overlay geometry -> image pixel mapping
- image_to_screen: pan / zoom / orientation viewport mapping
- display_state: the composed conversion facade used by rendering
"""
