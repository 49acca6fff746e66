# constants.py
"""
Application-level constants.

These values are static and do not change between runs. They are
fundamental to the application's framework, such as camera placement,
rendering properties, UI layout and numeric policies of the generator,
and are not part of the galaxy configuration.
"""
import math

# Visualization settings
# Window size used when fullscreen is disabled in config.json.
DEFAULT_WINDOW_SIZE = (1500, 800)
UI_PANEL_WIDTH = 300
FPS = 60
BACKGROUND_COLOR = (0, 0, 0)

# --- Camera ---
# Perspective camera placed like the original scene, looking at the origin.
CAMERA_POSITION = (3.0, 3.0, 17.0)
CAMERA_TARGET = (0.0, 0.0, 0.0)
CAMERA_FOV_DEGREES = 75.0
CAMERA_NEAR = 0.1
CAMERA_FAR = 100.0

# Radians per second of idle rotation around the Y axis.
ROTATION_SPEED = 0.1

# --- Point Rendering ---
# Side length in pixels of the procedural alpha mask sprite.
ALPHA_MASK_SIZE = 9
# Projected sizes are clamped to this range (pixels).
MIN_POINT_PIXELS = 1.0
MAX_POINT_PIXELS = float(ALPHA_MASK_SIZE)

# --- Generator ---
# Uniform draws per particle: radius, then (magnitude, sign) for X, Y, Z.
SAMPLES_PER_PARTICLE = 7
# Burst mode divides by the radius; radii are clamped to this before dividing.
BURST_RADIUS_EPSILON = 1e-3
TWO_PI = 2.0 * math.pi

# Defaults of the original galaxy, used for keys missing from config.json.
DEFAULT_GALAXY_PARAMETERS = {
    "count": 100000,
    "size": 0.01,
    "radius": 11.0,
    "branches": 3,
    "spin": 1.0,
    "randomness": 1.4,
    "random_power": 1.8,
    "center_flatness": 3.0,
    "inside_color": "#fe6512",
    "outside_color": "#0984ff",
    "add_burst": False,
}

# --- Parameter Panel ---
# (min, max, step) per editable parameter, mirroring the original controls.
PARAMETER_CONTROLS = {
    "size": (0.0, 0.05, 0.0001),
    "count": (1500, 150000, 10),
    "radius": (1.0, 20.0, 0.1),
    "branches": (2, 15, 1),
    "spin": (-6.0, 6.0, 0.1),
    "randomness": (0.0, 2.0, 0.001),
    "random_power": (0.0, 10.0, 0.01),
    "center_flatness": (1.0, 10.0, 0.01),
}
# Wheel notches are multiplied by this many steps for the coarse parameters.
PARAMETER_WHEEL_MULTIPLIER = {
    "count": 500,
    "size": 5,
    "randomness": 10,
    "random_power": 5,
    "center_flatness": 5,
}
# Color rows step their hue by this many degrees per wheel notch.
COLOR_ROWS = ("inside_color", "outside_color")
COLOR_HUE_STEP = 5.0
# Milliseconds without further edits before a change counts as finished.
EDIT_SETTLE_MS = 400

UI_BACKGROUND_ALPHA = 100
UI_ROW_HEIGHT = 30
UI_ROW_SPACING = 4
