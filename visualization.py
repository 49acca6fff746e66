# visualization.py
"""
Handles the visualization of the galaxy using Pygame.

The Visualizer is the scene the GalaxyGenerator publishes into: it builds
point drawables from particle buffers, keeps the single attached drawable,
renders it with additive blending through a perspective camera, and hosts
the parameter panel that requests regenerations.
"""
import dataclasses
import logging
import math
import pygame
import numpy as np
from numba import jit
from typing import Tuple, Optional, Dict, Any

from constants import (
    BACKGROUND_COLOR, DEFAULT_WINDOW_SIZE, UI_PANEL_WIDTH, FPS,
    CAMERA_POSITION, CAMERA_TARGET, CAMERA_FOV_DEGREES, CAMERA_NEAR,
    CAMERA_FAR, ROTATION_SPEED, ALPHA_MASK_SIZE, MIN_POINT_PIXELS,
    MAX_POINT_PIXELS, PARAMETER_CONTROLS, PARAMETER_WHEEL_MULTIPLIER,
    EDIT_SETTLE_MS, UI_BACKGROUND_ALPHA, UI_ROW_HEIGHT, UI_ROW_SPACING,
    COLOR_ROWS, COLOR_HUE_STEP
)
from galaxy import ParameterSet, ParticleBuffer
from utils import color_to_hex, shift_hue

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from generator import GalaxyGenerator


# --- Data Contracts ---
#
# class PointsDrawable:
#   - __init__(self, buffer: ParticleBuffer, point_size: float,
#              alpha_mask: np.ndarray, spin: float = 0.0)
#     - `spin` is the spin of the galaxy in the buffer; it sets the idle
#       rotation direction.
#   - dispose(self) -> None
#     - Side Effects: drops the buffer reference; the drawable renders nothing
#       afterwards.
#
# class Visualizer:
#   - __init__(self, params: ParameterSet, vis_params: Optional[dict] = None)
#     - Side Effects: Initializes Pygame and creates a display surface.
#   - create_drawable(self, buffer, point_size, spin=0.0) -> PointsDrawable
#   - attach(self, drawable) -> None
#     - Raises: RuntimeError if a drawable is already attached.
#   - detach(self, drawable) -> None
#     - None is a no-op. Raises KeyError for a drawable that is not attached.
#   - draw(self, generator: "GalaxyGenerator") -> bool
#     - Outputs: False if the user has quit, True otherwise.
#     - Side Effects: Renders the attached drawable and the panel, handles
#       Pygame events, records parameter edits.
#   - poll_parameter_edit(self) -> Optional[ParameterSet]
#     - Outputs: the edited parameters once the edit has settled, else None.


class PointsDrawable:
    """
    A point cloud as the scene sees it: buffer plus rendering state.
    """
    def __init__(
        self, buffer: ParticleBuffer, point_size: float, alpha_mask: np.ndarray, spin: float = 0.0
    ):
        self.buffer: Optional[ParticleBuffer] = buffer
        self.point_size = point_size
        self.alpha_mask = alpha_mask
        self.spin = spin
        self.additive_blending = True
        self.vertex_colors = True
        self.transparent = True
        self.rotation_y = 0.0

    @property
    def disposed(self) -> bool:
        return self.buffer is None

    def dispose(self):
        """Releases the particle arrays held by this drawable."""
        self.buffer = None


def rotation_y(angle: float) -> np.ndarray:
    """Right-handed rotation matrix around the Y axis."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [c, 0.0, s],
        [0.0, 1.0, 0.0],
        [-s, 0.0, c],
    ])


def _camera_basis() -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Returns (right, up, forward) unit vectors of the look-at camera."""
    position = np.array(CAMERA_POSITION, dtype=np.float64)
    forward = np.array(CAMERA_TARGET, dtype=np.float64) - position
    forward /= np.linalg.norm(forward)
    right = np.cross(forward, np.array([0.0, 1.0, 0.0]))
    right /= np.linalg.norm(right)
    up = np.cross(right, forward)
    return right, up, forward


def project_points(
    positions: np.ndarray, angle: float, width: int, height: int, point_size: float = 0.01
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Projects galaxy-space points onto the screen.

    Args:
        positions (np.ndarray): (N, 3) particle positions.
        angle (float): Rotation of the galaxy around Y, in radians.
        width (int): Viewport width in pixels.
        height (int): Viewport height in pixels.
        point_size (float): World-space point size, attenuated by depth.

    Returns:
        Tuple of screen coordinates (N, 2), pixel sizes (N,) and a visibility
        mask (N,).
    """
    right, up, forward = _camera_basis()
    rotated = positions @ rotation_y(angle).T
    relative = rotated - np.array(CAMERA_POSITION)

    x_cam = relative @ right
    y_cam = relative @ up
    depth = relative @ forward

    focal = (height / 2.0) / math.tan(math.radians(CAMERA_FOV_DEGREES) / 2.0)
    with np.errstate(divide='ignore', invalid='ignore'):
        screen = np.empty((positions.shape[0], 2))
        screen[:, 0] = width / 2.0 + x_cam / depth * focal
        screen[:, 1] = height / 2.0 - y_cam / depth * focal
        sizes = np.clip(point_size * (height / 2.0) / depth, MIN_POINT_PIXELS, MAX_POINT_PIXELS)

    visible = (
        (depth > CAMERA_NEAR) & (depth < CAMERA_FAR)
        & (screen[:, 0] >= 0) & (screen[:, 0] < width)
        & (screen[:, 1] >= 0) & (screen[:, 1] < height)
    )
    return screen, sizes, visible


def build_alpha_mask(size: int = ALPHA_MASK_SIZE) -> np.ndarray:
    """
    Procedural soft-disc alpha mask: 1 at the center, 0 at the rim.
    """
    center = (size - 1) / 2.0
    coords = np.arange(size) - center
    distance = np.sqrt(coords[:, None] ** 2 + coords[None, :] ** 2) / max(center + 0.5, 0.5)
    return (np.clip(1.0 - distance, 0.0, 1.0) ** 2).astype(np.float32)


@jit(nopython=True)
def _splat_points_numba(image, xs, ys, sizes, colors, alpha_mask):
    """
    Numba-jitted additive point splatting.

    `image` is indexed [x, y, channel] like pygame.surfarray. Each point
    covers a square footprint weighted by the alpha mask.
    """
    width = image.shape[0]
    height = image.shape[1]
    mask_size = alpha_mask.shape[0]

    for i in range(xs.shape[0]):
        half = int(sizes[i]) // 2
        span = 2 * half + 1
        for dx in range(-half, half + 1):
            px = xs[i] + dx
            if px < 0 or px >= width:
                continue
            mx = int((dx + half + 0.5) / span * mask_size)
            for dy in range(-half, half + 1):
                py = ys[i] + dy
                if py < 0 or py >= height:
                    continue
                my = int((dy + half + 0.5) / span * mask_size)
                alpha = alpha_mask[mx, my]
                for c in range(3):
                    image[px, py, c] += colors[i, c] * alpha


def step_parameter(params: ParameterSet, name: str, direction: int) -> ParameterSet:
    """
    Moves one parameter by `direction` wheel notches, respecting its
    control range and step. Color parameters rotate their hue instead.
    """
    if name in COLOR_ROWS:
        shifted = shift_hue(getattr(params, name), direction * COLOR_HUE_STEP)
        return dataclasses.replace(params, **{name: shifted})

    low, high, step = PARAMETER_CONTROLS[name]
    notches = direction * PARAMETER_WHEEL_MULTIPLIER.get(name, 1)
    value = getattr(params, name) + notches * step
    value = min(max(value, low), high)
    # Snap to the control grid to avoid drifting floating point values.
    value = low + round((value - low) / step) * step
    value = min(max(value, low), high)
    if isinstance(getattr(params, name), int) and not isinstance(getattr(params, name), bool):
        value = int(round(value))
    else:
        value = round(value, 6)
    return dataclasses.replace(params, **{name: value})


class Visualizer:
    """
    Renders the attached galaxy and provides the interactive parameter panel.
    """
    def __init__(self, params: ParameterSet, vis_params: Optional[Dict[str, Any]] = None):
        """
        Initializes Pygame and the display window.
        """
        vis_params = vis_params if vis_params is not None else {}
        pygame.init()
        pygame.font.init()

        if vis_params.get('fullscreen', False):
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width = vis_params.get('width', DEFAULT_WINDOW_SIZE[0])
            height = vis_params.get('height', DEFAULT_WINDOW_SIZE[1])
            self.screen = pygame.display.set_mode((width, height))

        # The render area is the total width minus the UI panel
        self.sim_width = width - UI_PANEL_WIDTH
        self.sim_height = height
        self.sim_surface = pygame.Surface((self.sim_width, self.sim_height), 0, 32)
        self.background = np.array(
            vis_params.get('background_color', BACKGROUND_COLOR), dtype=np.float32
        ) / 255.0

        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, self.sim_height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))

        pygame.display.set_caption("Galaxy Generator")
        self.clock = pygame.time.Clock()

        # Alpha mask shared by every drawable this scene creates
        self.alpha_mask = build_alpha_mask()

        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)

        self.text_color_title = (255, 255, 255)
        self.text_color_key = (200, 200, 200)
        self.row_color = (60, 60, 60)
        self.row_hover_color = (90, 90, 90)

        # Panel rows: editable numbers, then the burst toggle
        self.row_names = list(PARAMETER_CONTROLS) + list(COLOR_ROWS) + ['add_burst']
        panel_x = self.sim_width + 20
        self.row_rects = {
            name: pygame.Rect(
                panel_x, 50 + i * (UI_ROW_HEIGHT + UI_ROW_SPACING),
                UI_PANEL_WIDTH - 40, UI_ROW_HEIGHT
            )
            for i, name in enumerate(self.row_names)
        }
        self.hovered_row: Optional[str] = None

        # Panel state and the debounced edit waiting to be applied
        self.params = params
        self._pending: Optional[ParameterSet] = None
        self._last_edit_ms = 0

        # The single drawable currently in the scene
        self.drawable: Optional[PointsDrawable] = None
        self.start_ms = pygame.time.get_ticks()

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    # --- Scene sink ---

    def create_drawable(
        self, buffer: ParticleBuffer, point_size: float, spin: float = 0.0
    ) -> PointsDrawable:
        return PointsDrawable(buffer, point_size, self.alpha_mask, spin)

    def attach(self, drawable: PointsDrawable) -> None:
        if self.drawable is not None:
            raise RuntimeError("A galaxy drawable is already attached to the scene.")
        self.drawable = drawable
        logging.debug(f"Drawable attached ({len(drawable.buffer)} points).")

    def detach(self, drawable: Optional[PointsDrawable]) -> None:
        if drawable is None:
            return
        if drawable is not self.drawable:
            raise KeyError("Drawable is not attached to this scene.")
        self.drawable = None
        logging.debug("Drawable detached.")

    # --- Parameter panel ---

    def set_parameters(self, params: ParameterSet) -> None:
        """Resets the panel to `params`, discarding any pending edit."""
        self.params = params
        self._pending = None

    def poll_parameter_edit(self) -> Optional[ParameterSet]:
        if self._pending is None:
            return None
        if pygame.time.get_ticks() - self._last_edit_ms < EDIT_SETTLE_MS:
            return None
        edited, self._pending = self._pending, None
        logging.info("Parameter edit finished; regeneration requested.")
        return edited

    def _queue_edit(self, params: ParameterSet, immediate: bool = False) -> None:
        self.params = params
        self._pending = params
        now = pygame.time.get_ticks()
        self._last_edit_ms = now - EDIT_SETTLE_MS if immediate else now

    def _get_row_from_pos(self, pos: Tuple[int, int]) -> Optional[str]:
        for name, rect in self.row_rects.items():
            if rect.collidepoint(pos):
                return name
        return None

    def _format_value(self, name: str) -> str:
        value = getattr(self.params, name)
        if name in COLOR_ROWS:
            return color_to_hex(value)
        if isinstance(value, bool):
            return "on" if value else "off"
        if isinstance(value, float):
            return f"{value:.4f}" if name == 'size' else f"{value:.2f}"
        return str(value)

    def _draw_panel(self, generator: "GalaxyGenerator"):
        """Renders the parameter rows and generator status."""
        self.screen.blit(self.ui_panel_surface, (self.sim_width, 0))
        title = self.font_title.render("Galaxy", True, self.text_color_title)
        self.screen.blit(title, (self.sim_width + 20, 15))

        for name, rect in self.row_rects.items():
            color = self.row_hover_color if name == self.hovered_row else self.row_color
            pygame.draw.rect(self.screen, color, rect, border_radius=5)
            key_surf = self.font_main.render(name.replace('_', ' ').title(), True, self.text_color_key)
            self.screen.blit(key_surf, key_surf.get_rect(midleft=(rect.left + 8, rect.centery)))
            value_surf = self.font_main.render(self._format_value(name), True, self.text_color_title)
            self.screen.blit(value_surf, value_surf.get_rect(midright=(rect.right - 8, rect.centery)))

        y = self.row_rects[self.row_names[-1]].bottom + 20
        status_lines = [
            f"Generation {generator.generation}",
            f"Points {len(generator.buffer) if generator.buffer is not None else 0}",
        ]
        if self._pending is not None:
            status_lines.append("Edit pending...")
        for line in status_lines:
            surf = self.font_main.render(line, True, self.text_color_key)
            self.screen.blit(surf, (self.sim_width + 20, y))
            y += self.font_main.get_linesize()

    # --- Rendering ---

    def _render_points(self):
        """Projects and splats the attached drawable onto the render surface."""
        image = np.empty((self.sim_width, self.sim_height, 3), dtype=np.float32)
        image[:] = self.background

        drawable = self.drawable
        if drawable is not None and not drawable.disposed and len(drawable.buffer):
            screen, sizes, visible = project_points(
                drawable.buffer.positions, drawable.rotation_y,
                self.sim_width, self.sim_height, drawable.point_size
            )
            _splat_points_numba(
                image,
                screen[visible, 0].astype(np.int64),
                screen[visible, 1].astype(np.int64),
                sizes[visible],
                drawable.buffer.colors[visible],
                drawable.alpha_mask,
            )

        pixels = (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)
        pygame.surfarray.blit_array(self.sim_surface, pixels)
        self.screen.blit(self.sim_surface, (0, 0))

    def draw(self, generator: "GalaxyGenerator") -> bool:
        """
        Draws the galaxy and UI, and handles events.

        Returns:
            bool: False if the application should exit, True otherwise.
        """
        mouse_pos = pygame.mouse.get_pos()
        self.hovered_row = self._get_row_from_pos(mouse_pos)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                logging.info("ESC key pressed. Shutting down visualizer.")
                return False

            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                if self.hovered_row == 'add_burst':
                    self._queue_edit(
                        dataclasses.replace(self.params, add_burst=not self.params.add_burst),
                        immediate=True
                    )
                    logging.info(f"Burst mode toggled {'on' if self.params.add_burst else 'off'}.")

            if event.type == pygame.MOUSEWHEEL and (
                    self.hovered_row in PARAMETER_CONTROLS or self.hovered_row in COLOR_ROWS
            ):
                name = self.hovered_row
                old_value = getattr(self.params, name)
                self._queue_edit(step_parameter(self.params, name, event.y))
                logging.debug(f"Parameter {name} edited: {old_value} -> {getattr(self.params, name)}")

        # The galaxy turns against its spin direction
        if self.drawable is not None:
            elapsed = (pygame.time.get_ticks() - self.start_ms) / 1000.0
            turn = elapsed * ROTATION_SPEED
            self.drawable.rotation_y = turn if self.drawable.spin < 0 else -turn

        self._render_points()
        self._draw_panel(generator)

        pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
