import math

import numpy as np

from lutgen.utils import (calc_base, calc_base_comp, calc_coords, calc_perspective_projection,
                          cross, dot, mix, normalize, polar_velocity_to_cartesian, to_degree,
                          to_radian, trajectory_to_cartesian)


def test_angle_conversion():
    assert to_radian(180.0) == math.pi
    assert to_degree(math.pi) == 180.0
    assert math.isclose(to_degree(to_radian(152.0)), 152.0)


def test_mix_is_not_clamped():
    assert mix(2.0, 4.0, 0.25) == 2.5
    assert mix(2.0, 4.0, 1.5) == 5.0
    assert np.allclose(mix(np.array([0.0, 1.0]), np.array([2.0, 3.0]), 0.5), [1.0, 2.0])


def test_vector_helpers():
    x = np.array([1.0, 0.0, 0.0])
    y = np.array([0.0, 1.0, 0.0])
    assert np.allclose(cross(x, y), [0.0, 0.0, 1.0])
    assert dot(x, y) == 0.0
    assert np.allclose(normalize([3.0, 4.0, 0.0]), [0.6, 0.8, 0.0])


def test_base_spans_plane_of_point():
    p = np.array([-5.0, 3.5, -2.0])
    e1, e2 = calc_base(p)

    assert np.allclose(e1, [1.0, 0.0, 0.0])
    assert math.isclose(dot(e2, e2), 1.0)
    assert abs(dot(e1, e2)) < 1e-15
    # p lies in the (e1, e2) plane
    residual = p - dot(p, e1) * e1 - dot(p, e2) * e2
    assert np.allclose(residual, 0.0, atol=1e-12)


def test_base_components_round_trip():
    p = np.array([-5.0, 3.5, 3.0])
    e1, e2 = calc_base(p)
    r, phi = calc_base_comp(e1, e2, p)

    assert math.isclose(r, np.linalg.norm(p))
    assert math.pi / 2 < phi < math.pi  # behind the black hole seen from +x
    assert np.allclose(calc_coords(e1, e2, phi, r), p)


def test_perspective_projection():
    cx, cy = calc_perspective_projection(np.array([-2.0, 1.0, 0.5]))
    assert math.isclose(cx, 20.0)
    assert math.isclose(cy, 10.0)


def test_polar_velocity_to_cartesian():
    ux, uy = polar_velocity_to_cartesian(2.0, math.pi / 2, 1.0, 0.5)
    assert math.isclose(ux, -1.0)
    assert math.isclose(uy, 1.0)


def test_trajectory_to_cartesian():
    x, y, z = trajectory_to_cartesian([1.0, 2.0], [0.0, math.pi / 2])
    assert np.allclose(x, [1.0, 0.0], atol=1e-12)
    assert np.allclose(y, [0.0, 2.0], atol=1e-12)
    assert np.allclose(z, [0.0, 0.0], atol=1e-12)


if __name__ == "__main__":
    test_base_spans_plane_of_point()
    test_base_components_round_trip()
