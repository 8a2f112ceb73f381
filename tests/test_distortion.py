import math

import numpy as np
import pytest

from lutgen.distortion import LINE_END, LINE_START, calc_line_distortion
from lutgen.geodesic import GeodesicSolution
from lutgen.utils import calc_base, calc_base_comp


def _straight_ray(order, r_init, r_final, phi_final, model=None, config=None, rng=None):
    ksi = math.atan2(r_final * math.sin(phi_final), r_final * math.cos(phi_final) - r_init)
    dist = math.hypot(r_final * math.cos(phi_final) - r_init, r_final * math.sin(phi_final))
    return GeodesicSolution(ksi=ksi, dt=-dist, dr_err=0.0, count=1, valid=True,
                            velocity=(math.cos(ksi), math.sin(ksi)), bracket=(0.0, math.pi),
                            bracket_mismatch=(1.0, -1.0))


def test_line_samples(monkeypatch):
    monkeypatch.setattr("lutgen.distortion.find_geodesic", _straight_ray)
    df = calc_line_distortion(40.0, n=5)

    assert len(df) == 5
    assert list(df.columns) == ['py', 'pz', 'cx', 'cy', 'r', 'phi', 'ksi', 'dt',
                                'qx', 'qy', 'qz', 'valid']
    assert np.allclose(df['py'], LINE_START[1])
    assert np.allclose(df['pz'], np.linspace(LINE_START[2], LINE_END[2], 5))
    assert df['valid'].all()

    p = np.array([-5.0, 3.5, -2.0])
    r, phi = calc_base_comp(*calc_base(p), p)
    assert math.isclose(df['r'].iloc[0], r)
    assert math.isclose(df['phi'].iloc[0], phi)


def test_undistorted_line_stays_straight(monkeypatch):
    # with straight rays the apparent point is the source-relative offset of
    # the world point, so the projected samples are collinear
    monkeypatch.setattr("lutgen.distortion.find_geodesic", _straight_ray)
    df = calc_line_distortion(40.0, n=7)

    assert np.all(np.isfinite(df[['cx', 'cy']].values))
    pts = df[['cx', 'cy']].values
    d = pts[1:] - pts[0]
    cross = d[:, 0] * d[-1, 1] - d[:, 1] * d[-1, 0]
    assert np.allclose(cross, 0.0, atol=1e-9)


@pytest.mark.slow
def test_lensed_line_through_real_solver():
    df = calc_line_distortion(40.0, n=3)

    assert df['valid'].all()
    assert np.all(np.isfinite(df[['cx', 'cy', 'ksi', 'dt']].values))
    # straight rays would project the segment onto cx = 40 * 3.5 / 45
    straight_cx = 40.0 * LINE_START[1] / (40.0 - LINE_START[0])
    straight_cy = 40.0 * df['pz'].values / (40.0 - LINE_START[0])
    offset = np.hypot(df['cx'].values - straight_cx, df['cy'].values - straight_cy)
    assert np.all(offset > 1e-2)
