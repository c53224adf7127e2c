"""Gerberscope - Gerber RS-274X geometry and viewport pipeline.

Gerberscope turns an already-parsed Gerber image (apertures, aperture macros
and a structured command stream) into a flat list of filled or cleared
polygons in image space, plus the coordinate mappings needed to place that
geometry in an interactive, pannable, zoomable and rotatable viewport.

Example:
    assembler = GeometryAssembler(get_default_settings())
    layer = assembler.build(image)
    viewport = fit_viewport(layer.bounding_box, 800, 600)
    screen = gerber_to_screen(Point(1.0, 2.0), viewport)
"""

__version__ = "0.1.0"
__author__ = "Gerberscope contributors"

__all__ = ["__author__", "__version__"]
