# galaxy.py
"""
Defines the value types of the galaxy generator.

This module holds the ParameterSet describing a galaxy, the immutable
ParticleBuffer produced from it, and the validation rules a parameter set
must satisfy before any particles are generated.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple, List

import numpy as np

from constants import DEFAULT_GALAXY_PARAMETERS
from utils import parse_color

# --- Data Contracts ---
#
# class ParameterSet (frozen dataclass):
#   - Fields: count, size, radius, branches, spin, randomness, random_power,
#     center_flatness, inside_color, outside_color, add_burst.
#   - from_config(section: Dict[str, Any]) -> ParameterSet
#     - Inputs: the "galaxy" section of config.json. Colors are hex strings
#       or 0-255 RGB lists. Missing keys use DEFAULT_GALAXY_PARAMETERS.
#   - validate(self) -> None
#     - Raises: InvalidParameterError listing every violated constraint.
#
# class ParticleBuffer (frozen dataclass):
#   - positions: float32 array of shape (count, 3), read-only.
#   - colors: float32 array of shape (count, 3), read-only.
#   - clamped: int, particles whose radius was clamped in burst mode.
#   - Invariants: len(positions) == len(colors) == count.

RGB = Tuple[float, float, float]


class InvalidParameterError(ValueError):
    """Raised when a ParameterSet violates the generator's contract."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("Invalid galaxy parameters: " + "; ".join(self.violations))


@dataclass(frozen=True)
class ParameterSet:
    """
    The full set of knobs describing one galaxy.

    `randomness` is carried for compatibility with the control layer but is
    not consumed by the particle distribution.
    """
    count: int = 100000
    size: float = 0.01
    radius: float = 11.0
    branches: int = 3
    spin: float = 1.0
    randomness: float = 1.4
    random_power: float = 1.8
    center_flatness: float = 3.0
    inside_color: RGB = (254 / 255.0, 101 / 255.0, 18 / 255.0)
    outside_color: RGB = (9 / 255.0, 132 / 255.0, 1.0)
    add_burst: bool = False

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> "ParameterSet":
        """
        Builds a parameter set from the "galaxy" section of the config.

        Args:
            section (Dict[str, Any]): Galaxy parameters. Unknown keys are
                ignored with a warning.

        Returns:
            ParameterSet: The parsed (not yet validated) parameters.
        """
        merged = dict(DEFAULT_GALAXY_PARAMETERS)
        unknown = set(section) - set(merged)
        if unknown:
            logging.warning(f"Ignoring unknown galaxy parameters: {sorted(unknown)}")
        merged.update({k: v for k, v in section.items() if k in merged})

        try:
            inside = parse_color(merged['inside_color'])
            outside = parse_color(merged['outside_color'])
        except ValueError as e:
            logging.error(f"Could not parse galaxy colors from config: {e}")
            raise InvalidParameterError([str(e)]) from e

        add_burst = merged['add_burst']
        if not isinstance(add_burst, bool):
            error = InvalidParameterError(
                [f"add_burst must be true or false, got {add_burst!r}"]
            )
            logging.error(str(error))
            raise error

        return cls(
            count=int(merged['count']),
            size=float(merged['size']),
            radius=float(merged['radius']),
            branches=int(merged['branches']),
            spin=float(merged['spin']),
            randomness=float(merged['randomness']),
            random_power=float(merged['random_power']),
            center_flatness=float(merged['center_flatness']),
            inside_color=inside,
            outside_color=outside,
            add_burst=add_burst,
        )

    def validate(self) -> None:
        """Raises InvalidParameterError if any constraint is violated."""
        violations = []
        if self.count < 0:
            violations.append(f"count must be >= 0, got {self.count}")
        if self.size < 0:
            violations.append(f"size must be >= 0, got {self.size}")
        if not self.radius > 0:
            violations.append(f"radius must be > 0, got {self.radius}")
        if self.branches <= 0:
            violations.append(f"branches must be >= 1, got {self.branches}")
        if not self.random_power >= 0:
            violations.append(f"random_power must be >= 0, got {self.random_power}")
        if not self.add_burst and not self.center_flatness > 0:
            violations.append(
                f"center_flatness must be > 0 when add_burst is off, got {self.center_flatness}"
            )
        for name in ('inside_color', 'outside_color'):
            rgb = getattr(self, name)
            if len(rgb) != 3 or not all(0.0 <= c <= 1.0 for c in rgb):
                violations.append(f"{name} must be 3 channels in [0, 1], got {rgb}")

        if violations:
            error = InvalidParameterError(violations)
            logging.error(str(error))
            raise error


@dataclass(frozen=True, eq=False)
class ParticleBuffer:
    """Position and color arrays of one generated galaxy."""
    positions: np.ndarray
    colors: np.ndarray
    clamped: int = 0
    count: int = field(init=False)

    def __post_init__(self):
        if self.positions.shape != self.colors.shape or self.positions.ndim != 2 \
                or self.positions.shape[1] != 3:
            raise ValueError(
                f"positions {self.positions.shape} and colors {self.colors.shape} "
                f"must both have shape (count, 3)"
            )
        # Buffers are shared with the renderer; nobody may write to them.
        self.positions.setflags(write=False)
        self.colors.setflags(write=False)
        object.__setattr__(self, 'count', self.positions.shape[0])

    def __len__(self) -> int:
        return self.count

    @classmethod
    def empty(cls) -> "ParticleBuffer":
        return cls(np.zeros((0, 3), dtype=np.float32), np.zeros((0, 3), dtype=np.float32))
