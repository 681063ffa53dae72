"""
Shared constants for the canvas core.

The rendering layer (graph_viz) and the hit-tester read the same node
geometry, so both import from here.
"""

# Grid increment in canvas units; node positions snap to multiples of this
GRID_SIZE = 20

# Zoom bounds and the multiplicative step used by wheel and toolbar zoom
MIN_ZOOM = 0.25
MAX_ZOOM = 2.0
ZOOM_STEP = 1.1

# Offset applied (on both axes) to a duplicated node
DUPLICATE_OFFSET = 40

# Node box geometry in canvas units
NODE_WIDTH = 200
NODE_HEIGHT = 80

# Radius in canvas units for port hits
PORT_HIT_RADIUS = 12

# Distance in canvas units to detect a click on a connector path
EDGE_HIT_TOLERANCE = 8

# Minimum horizontal control-point offset for Bezier connectors
BEZIER_MIN_CURVATURE = 50

# Default placement for palette clicks: (100 + n*STEP_X, 100 + n*STEP_Y)
PALETTE_ORIGIN = (100, 100)
PALETTE_STEP = (20, 120)

# DOM mouse button codes
LEFT_BUTTON = 0
MIDDLE_BUTTON = 1
RIGHT_BUTTON = 2
