from __future__ import annotations

import dataclasses
import math

import numpy as np
import pytest

from conftest import SCENARIO_SEQUENCE, RecordingSink
from constants import BURST_RADIUS_EPSILON, SAMPLES_PER_PARTICLE
from galaxy import InvalidParameterError
from generator import GalaxyGenerator, draw_samples, generate_particles
from random_source import RecordingRandomSource, ReplayRandomSource, SeededRandomSource


# --- Pure generation ---

@pytest.mark.parametrize("count", [1, 7, 1000])
def test_count_invariant(small_params, count):
    params = dataclasses.replace(small_params, count=count)
    buffer = generate_particles(params, SeededRandomSource(1))

    assert buffer.positions.shape == (count, 3)
    assert buffer.colors.shape == (count, 3)
    assert len(buffer) == count


def test_zero_count_yields_empty_buffer(small_params):
    params = dataclasses.replace(small_params, count=0)
    buffer = generate_particles(params, SeededRandomSource(1))

    assert len(buffer) == 0
    assert buffer.positions.shape == (0, 3)


def test_draw_count_is_seven_per_particle(small_params):
    rng = RecordingRandomSource(SeededRandomSource(3))
    params = dataclasses.replace(small_params, count=25)

    generate_particles(params, rng)

    assert rng.calls == 25 * SAMPLES_PER_PARTICLE


def test_draw_samples_keeps_particle_order():
    rng = ReplayRandomSource([i / 100 for i in range(14)], cycle=False)
    draws = draw_samples(rng, 2)

    assert draws.shape == (2, 7)
    assert draws[1, 0] == pytest.approx(0.07)
    assert draws[0, 6] == pytest.approx(0.06)


def test_replayed_sequence_is_bit_identical(small_params):
    recorder = RecordingRandomSource(SeededRandomSource(42))
    first = generate_particles(small_params, recorder)

    second = generate_particles(small_params, recorder.replay())
    third = generate_particles(small_params, recorder.replay())

    assert np.array_equal(first.positions, second.positions)
    assert np.array_equal(first.colors, second.colors)
    assert np.array_equal(second.positions, third.positions)


def test_same_seed_same_galaxy(small_params):
    a = generate_particles(small_params, SeededRandomSource(7))
    b = generate_particles(small_params, SeededRandomSource(7))

    assert np.array_equal(a.positions, b.positions)
    assert np.array_equal(a.colors, b.colors)


def test_buffers_are_read_only(small_params):
    buffer = generate_particles(small_params, SeededRandomSource(1))

    with pytest.raises(ValueError):
        buffer.positions[0, 0] = 1.0


def test_color_bounds(small_params):
    params = dataclasses.replace(
        small_params, inside_color=(1.0, 0.2, 0.0), outside_color=(0.0, 0.8, 1.0)
    )
    buffer = generate_particles(params, SeededRandomSource(5))

    assert buffer.colors.min() >= 0.0
    assert buffer.colors.max() <= 1.0


def test_color_at_center_is_inside_color(scenario_params):
    rng = ReplayRandomSource([0.0, 0.5, 0.0, 0.5, 0.0, 0.5, 0.0])
    buffer = generate_particles(dataclasses.replace(scenario_params, count=1), rng)

    assert buffer.colors[0] == pytest.approx([1.0, 0.0, 0.0])


def test_color_near_rim_approaches_outside_color(scenario_params):
    rng = ReplayRandomSource([0.999999, 0.5, 0.0, 0.5, 0.0, 0.5, 0.0])
    buffer = generate_particles(dataclasses.replace(scenario_params, count=1), rng)

    assert buffer.colors[0] == pytest.approx([0.0, 0.0, 1.0], abs=1e-5)


def test_branch_angle_depends_only_on_index_residue(scenario_params):
    params = dataclasses.replace(scenario_params, count=6, branches=3, spin=0.7)
    buffer = generate_particles(params, ReplayRandomSource(SCENARIO_SEQUENCE))

    for i in range(3):
        assert np.array_equal(buffer.positions[i], buffer.positions[i + 3])
    assert not np.allclose(buffer.positions[0], buffer.positions[1])


def test_scenario_flattened_disk(scenario_params):
    buffer = generate_particles(scenario_params, ReplayRandomSource(SCENARIO_SEQUENCE))

    # r = 0.25 * 10 = 2.5, jitter X = +0.1, Y = -0.1, Z = +0.1, branch angle 0
    x, y, z = buffer.positions[0]
    assert x == pytest.approx(0.0, abs=1e-6)
    assert y == pytest.approx(-0.1 / (1.0 + 2.5), abs=1e-6)
    assert z == pytest.approx(2.6, abs=1e-6)
    assert buffer.colors[0] == pytest.approx([0.75, 0.0, 0.25], abs=1e-6)

    # Particle 1 sits on the opposite branch (angle pi)
    x1, _, z1 = buffer.positions[1]
    assert x1 == pytest.approx(math.sin(math.pi) * 2.6, abs=1e-6)
    assert z1 == pytest.approx(-2.5 + 0.1, abs=1e-6)


def test_scenario_burst_divides_by_radius(scenario_params):
    params = dataclasses.replace(scenario_params, add_burst=True)
    buffer = generate_particles(params, ReplayRandomSource(SCENARIO_SEQUENCE))

    assert buffer.positions[0, 1] == pytest.approx(-0.1 / 2.5, abs=1e-6)
    assert buffer.positions[0, 2] == pytest.approx(2.6, abs=1e-6)
    assert buffer.clamped == 0


def test_burst_at_zero_radius_is_clamped_and_finite(scenario_params):
    params = dataclasses.replace(scenario_params, add_burst=True, count=1)
    rng = ReplayRandomSource([0.0, 0.1, 0.0, 0.1, 0.0, 0.1, 0.0])
    buffer = generate_particles(params, rng)

    assert np.isfinite(buffer.positions).all()
    assert buffer.positions[0, 1] == pytest.approx(0.1 / BURST_RADIUS_EPSILON, rel=1e-5)
    assert buffer.clamped == 1


def test_zero_random_power_gives_full_radius(scenario_params):
    params = dataclasses.replace(scenario_params, random_power=0.0, count=1)
    buffer = generate_particles(params, ReplayRandomSource(SCENARIO_SEQUENCE))

    # Every power term is 1: r = radius, |jitter| = 1
    assert buffer.positions[0, 2] == pytest.approx(10.0 + 1.0, abs=1e-5)
    assert buffer.colors[0] == pytest.approx([0.0, 0.0, 1.0], abs=1e-6)


@pytest.mark.parametrize("changes", [
    {"count": -1},
    {"radius": 0.0},
    {"branches": 0},
    {"inside_color": (1.5, 0.0, 0.0)},
    {"random_power": -1.0},
])
def test_invalid_parameters_are_rejected(scenario_params, changes):
    with pytest.raises(InvalidParameterError):
        generate_particles(dataclasses.replace(scenario_params, **changes), SeededRandomSource(1))


def test_invalid_parameters_draw_nothing(scenario_params):
    rng = RecordingRandomSource(SeededRandomSource(1))
    with pytest.raises(InvalidParameterError):
        generate_particles(dataclasses.replace(scenario_params, radius=-2.0), rng)
    assert rng.calls == 0


# --- Regeneration lifecycle ---

def test_single_drawable_over_many_regenerations(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))

    for n in range(1, 6):
        generator.regenerate(dataclasses.replace(small_params, branches=n, count=50 * n))
        assert len(sink.attached) == 1

    assert sink.attach_calls == 5
    assert sink.detach_calls == 4
    assert sink.max_attached == 1
    assert generator.generation == 5
    assert sink.attached[0] is generator.current


def test_previous_drawable_is_disposed(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    first = generator.regenerate(small_params)
    second = generator.regenerate(small_params)

    assert first.disposed
    assert first.buffer is None
    assert not second.disposed
    assert second.buffer is generator.buffer


def test_first_regeneration_does_not_detach(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    generator.regenerate(small_params)

    assert sink.detach_calls == 0


def test_failed_regeneration_keeps_previous_galaxy(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    drawable = generator.regenerate(small_params)
    buffer = generator.buffer

    with pytest.raises(InvalidParameterError):
        generator.regenerate(dataclasses.replace(small_params, branches=0))

    assert generator.current is drawable
    assert generator.buffer is buffer
    assert sink.attached == [drawable]
    assert sink.attach_calls == 1
    assert sink.detach_calls == 0
    assert generator.generation == 1


def test_zero_count_regenerates_empty_drawable(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    drawable = generator.regenerate(dataclasses.replace(small_params, count=0))

    assert len(drawable.buffer) == 0
    assert sink.attached == [drawable]


def test_explicit_rng_overrides_default(sink, scenario_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    generator.regenerate(scenario_params, ReplayRandomSource(SCENARIO_SEQUENCE))

    assert generator.buffer.positions[0, 2] == pytest.approx(2.6, abs=1e-6)


def test_unknown_handle_on_detach_is_logged(sink, small_params, caplog):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    generator.regenerate(small_params)
    sink.attached.clear()

    generator.regenerate(small_params)

    assert "did not recognize" in caplog.text
    assert len(sink.attached) == 1


def test_teardown_detaches_once(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    drawable = generator.regenerate(small_params)

    generator.dispose()
    generator.dispose()

    assert sink.detach_calls == 1
    assert sink.attached == []
    assert generator.current is None
    assert generator.buffer is None
    assert drawable.buffer is None


class BuildFailsOnceSink(RecordingSink):
    """Sink whose drawable construction fails after the first success."""

    def create_drawable(self, buffer, point_size, spin=0.0):
        if self.created:
            raise MemoryError("out of vertex buffer memory")
        return super().create_drawable(buffer, point_size, spin)


def test_failed_drawable_build_keeps_previous_galaxy(small_params):
    sink = BuildFailsOnceSink()
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    first = generator.regenerate(small_params)

    with pytest.raises(MemoryError):
        generator.regenerate(dataclasses.replace(small_params, count=10))

    assert sink.attached == [first]
    assert not first.disposed
    assert generator.current is first
    assert generator.buffer is first.buffer
    assert sink.detach_calls == 0
    assert generator.generation == 1


def test_drawable_carries_spin_of_its_galaxy(sink, small_params):
    generator = GalaxyGenerator(sink, SeededRandomSource(0))
    drawable = generator.regenerate(dataclasses.replace(small_params, spin=-2.5))

    assert drawable.spin == -2.5
