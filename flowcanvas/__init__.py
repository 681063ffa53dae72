"""
flowcanvas - interactive workflow canvas core.

Blocks (data sources, transforms, visualizations) are placed on a pannable,
zoomable grid and wired output port to input port.
"""

__version__ = "0.1.0"
