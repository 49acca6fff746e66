# generator.py
"""
Generates spiral galaxy particles and manages their regeneration lifecycle.

This module defines the Numba-compiled distribution kernel that maps a
parameter set and a block of uniform draws to position and color arrays,
and the GalaxyGenerator class, which owns the currently displayed drawable
and swaps it for a freshly generated one whenever parameters change.
"""
import logging
import numpy as np
from typing import Optional, Protocol, Any
from numba import jit

from constants import SAMPLES_PER_PARTICLE, BURST_RADIUS_EPSILON, TWO_PI
from galaxy import ParameterSet, ParticleBuffer

# --- Data Contracts ---
#
# generate_particles(params: ParameterSet, rng) -> ParticleBuffer:
#   - Inputs:
#     - params: a ParameterSet; validated before any draw is made.
#     - rng: a RandomSource (`next()`, optionally `sample(n)`).
#   - Outputs: a new, read-only ParticleBuffer with params.count particles.
#   - Side Effects: consumes exactly params.count * 7 values from rng in the
#     order radius, X mag, X sign, Y mag, Y sign, Z mag, Z sign per particle.
#   - Raises: InvalidParameterError.
#
# class GalaxyGenerator:
#   - __init__(self, sink: SceneSink, rng)
#   - regenerate(self, params: ParameterSet, rng=None) -> Drawable
#     - Side Effects: detaches and disposes the previous drawable, then
#       attaches the new one. Nothing changes if validation or drawable
#       construction fails.
#     - Invariants: at most one drawable from this generator is attached.
#   - dispose(self) -> None
#     - Side Effects: detaches and disposes the current drawable, if any.


class SceneSink(Protocol):
    """The rendering collaborator that owns drawables once attached."""

    def create_drawable(
        self, buffer: ParticleBuffer, point_size: float, spin: float = 0.0
    ) -> Any: ...

    def attach(self, drawable: Any) -> None: ...

    def detach(self, drawable: Any) -> None: ...


@jit(nopython=True)
def _signed_jitter(magnitude_draw, sign_draw, random_power):
    """Power-biased offset whose sign comes from an independent draw."""
    sign = 1.0 if sign_draw < 0.5 else -1.0
    return magnitude_draw ** random_power * sign


@jit(nopython=True)
def _build_galaxy_numba(
    draws, radius, branches, spin, random_power, center_flatness,
    add_burst, burst_epsilon, inside_color, outside_color
):
    """
    Numba-jitted kernel computing positions and colors from uniform draws.

    `draws` has shape (count, 7) with columns radius, X mag, X sign, Y mag,
    Y sign, Z mag, Z sign. Returns (positions, colors, clamped).
    """
    count = draws.shape[0]
    positions = np.zeros((count, 3), dtype=np.float32)
    colors = np.zeros((count, 3), dtype=np.float32)
    clamped = 0

    for i in range(count):
        r = draws[i, 0] ** random_power * radius

        spin_angle = r * spin
        branch_angle = (i % branches) / branches * TWO_PI
        angle = branch_angle + spin_angle

        random_x = _signed_jitter(draws[i, 1], draws[i, 2], random_power)
        random_y = _signed_jitter(draws[i, 3], draws[i, 4], random_power)
        random_z = _signed_jitter(draws[i, 5], draws[i, 6], random_power)

        positions[i, 0] = np.sin(angle) * (r + random_x)
        if add_burst:
            divisor = r
            if divisor < burst_epsilon:
                divisor = burst_epsilon
                clamped += 1
            positions[i, 1] = random_y / divisor
        else:
            positions[i, 1] = random_y / (center_flatness + r)
        positions[i, 2] = np.cos(angle) * r + random_z

        mix = r / radius
        for c in range(3):
            colors[i, c] = inside_color[c] + (outside_color[c] - inside_color[c]) * mix

    return positions, colors, clamped


def draw_samples(rng, count: int) -> np.ndarray:
    """
    Pulls count * 7 uniforms from rng and shapes them (count, 7).

    Uses the source's bulk `sample` when it has one, otherwise calls
    `next()` one value at a time in particle order.
    """
    total = count * SAMPLES_PER_PARTICLE
    if hasattr(rng, 'sample'):
        flat = np.asarray(rng.sample(total), dtype=np.float64)
    else:
        flat = np.fromiter((rng.next() for _ in range(total)), dtype=np.float64, count=total)
    return flat.reshape(count, SAMPLES_PER_PARTICLE)


def generate_particles(params: ParameterSet, rng) -> ParticleBuffer:
    """
    Computes a complete particle buffer for one parameter set.

    Args:
        params (ParameterSet): Galaxy description.
        rng: RandomSource supplying the uniform draws.

    Returns:
        ParticleBuffer: The generated, read-only buffer.
    """
    params.validate()
    if params.count == 0:
        logging.info("Galaxy count is 0; generating an empty buffer.")
        return ParticleBuffer.empty()

    draws = draw_samples(rng, params.count)
    positions, colors, clamped = _build_galaxy_numba(
        draws,
        np.float64(params.radius),
        np.int64(params.branches),
        np.float64(params.spin),
        np.float64(params.random_power),
        np.float64(params.center_flatness),
        params.add_burst,
        np.float64(BURST_RADIUS_EPSILON),
        np.array(params.inside_color, dtype=np.float64),
        np.array(params.outside_color, dtype=np.float64),
    )
    if clamped:
        logging.debug(
            f"Burst mode clamped {clamped} particle radii to {BURST_RADIUS_EPSILON}."
        )
    return ParticleBuffer(positions, colors, clamped=int(clamped))


class GalaxyGenerator:
    """
    Owns the galaxy currently shown in the scene and rebuilds it on demand.
    """
    def __init__(self, sink: SceneSink, rng):
        """
        Initializes the generator with no drawable attached.

        Args:
            sink (SceneSink): Scene that receives the drawables.
            rng: Default RandomSource for regenerations.
        """
        self.sink = sink
        self.rng = rng
        self.current = None
        self.buffer: Optional[ParticleBuffer] = None
        self.generation = 0
        logging.info("GalaxyGenerator initialized.")

    def regenerate(self, params: ParameterSet, rng=None):
        """
        Replaces the displayed galaxy with one built from `params`.

        Generation and drawable construction happen before the old drawable
        is touched, so a failure in either leaves the scene exactly as it was.

        Returns:
            The newly attached drawable.
        """
        buffer = generate_particles(params, rng if rng is not None else self.rng)

        drawable = self.sink.create_drawable(buffer, params.size, params.spin)

        # Swap: retire the old drawable, then publish the new one.
        self._release()
        self.sink.attach(drawable)
        self.current = drawable
        self.buffer = buffer
        self.generation += 1

        logging.info(
            f"Galaxy regenerated (#{self.generation}): {buffer.count} particles, "
            f"{params.branches} branches, radius {params.radius:.2f}, "
            f"burst {'on' if params.add_burst else 'off'}."
        )
        return drawable

    def dispose(self) -> None:
        """Detaches the current galaxy, if any, and drops its buffers."""
        if self.current is not None:
            logging.info("Disposing galaxy generator.")
        self._release()

    def _release(self) -> None:
        previous = self.current
        if previous is None:
            return
        try:
            self.sink.detach(previous)
        except KeyError as e:
            logging.warning(f"Scene did not recognize the previous galaxy drawable: {e}")
        dispose = getattr(previous, 'dispose', None)
        if dispose is not None:
            dispose()
        self.current = None
        self.buffer = None
