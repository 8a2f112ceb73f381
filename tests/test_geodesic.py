import math

import numpy as np
import pytest
from scipy.integrate import solve_ivp
from scipy.optimize import brentq

from lutgen.blackhole import SchwarzschildModel
from lutgen.geodesic import (SolverConfig, calc_flat_ksi, calc_geodesic_up_to,
                             find_geodesic)

R_INIT = 40.0
R_FINAL = 10.0
PHI_FINAL = math.pi / 2


def _reference_radius(ksi, r_init=R_INIT, phi_final=PHI_FINAL, rs=2.0):
    """Radius at which the ray crosses *phi_final*, integrated with DOP853."""
    w = math.sqrt(1.0 - rs / r_init)
    y0 = [0.0, r_init, 0.0, -1.0 / w, math.cos(ksi) * w, math.sin(ksi) / r_init]

    def rhs(lam, y):
        _, r, _, ut, ur, up = y
        return [ut, ur, up,
                -rs / (r * (r - rs)) * ut * ur,
                -0.5 * rs * (r - rs) / r ** 3 * ut * ut + 0.5 * rs / (r * (r - rs)) * ur * ur
                + (r - rs) * up * up,
                -2.0 / r * ur * up]

    def crossing(lam, y):
        return y[2] - phi_final
    crossing.terminal = True
    crossing.direction = 1

    def capture(lam, y):
        return y[1] - rs - 1e-2
    capture.terminal = True

    sol = solve_ivp(rhs, (0.0, 1e4), y0, method='DOP853', rtol=1e-12, atol=1e-12,
                    events=[crossing, capture])
    assert len(sol.t_events[0]) == 1
    return sol.y_events[0][0][1]


@pytest.fixture(scope="module")
def direct_solution():
    return find_geodesic(0, R_INIT, R_FINAL, PHI_FINAL, rng=np.random.default_rng(0))


def test_flat_ksi():
    assert math.isclose(calc_flat_ksi(40.0, 10.0, math.pi / 2), math.pi - math.atan(0.25))
    # target straight ahead towards the origin
    assert math.isclose(calc_flat_ksi(40.0, 10.0, 0.0), math.pi)
    assert 0.0 < calc_flat_ksi(40.0, 60.0, 0.5) < math.pi / 2


def test_ray_hits_target_azimuth():
    model = SchwarzschildModel()
    hit = calc_geodesic_up_to(model, R_INIT, 2.8, R_FINAL, PHI_FINAL)
    assert hit.valid
    assert math.isclose(hit.dr + R_FINAL, _reference_radius(2.8), abs_tol=1e-2)
    assert hit.dt < 0.0


def test_outward_ray_never_reaches_target():
    model = SchwarzschildModel()
    hit = calc_geodesic_up_to(model, R_INIT, 0.0, R_FINAL, PHI_FINAL)
    assert not hit.valid
    assert hit.dr is None


def test_direct_image_converges(direct_solution):
    sol = direct_solution
    print("ksi:", sol.ksi, "dt:", sol.dt, "dr:", sol.dr_err, "count:", sol.count)

    assert sol.valid
    assert sol.reason is None
    assert 0 < sol.count < 200
    assert abs(sol.dr_err) < 1e-5
    assert 0.0 < sol.ksi < math.pi
    assert sol.dt < 0.0
    assert all(math.isfinite(u) for u in sol.velocity)


def test_direct_image_matches_reference_integrator(direct_solution):
    ksi = direct_solution.ksi
    ksi_ref = brentq(lambda k: _reference_radius(k) - R_FINAL, ksi - 0.05, ksi + 0.05, xtol=1e-12)
    assert math.isclose(ksi, ksi_ref, abs_tol=1e-4)


def test_direct_image_is_bent_towards_the_hole(direct_solution):
    # less inward aim than the straight line
    assert direct_solution.ksi < calc_flat_ksi(R_INIT, R_FINAL, PHI_FINAL)


@pytest.mark.parametrize("order, r_final, phi_final", [
    (0, R_FINAL, PHI_FINAL),
    (0, 20.0, 1.0),
    (0, 6.0, 2.5),
    (1, R_FINAL, 2.0 * math.pi - PHI_FINAL),
    (1, 20.0, 4.0),
])
def test_final_bracket_straddles_the_root(order, r_final, phi_final):
    sol = find_geodesic(order, R_INIT, r_final, phi_final, rng=np.random.default_rng(6))
    assert sol.valid

    dr_a, dr_b = sol.bracket_mismatch
    ksi_a, ksi_b = sol.bracket
    if abs(sol.dr_err) >= SolverConfig().exact_hit:
        assert dr_a * dr_b < 0.0
    assert min(ksi_a, ksi_b) <= sol.ksi <= max(ksi_a, ksi_b)


def test_flat_space_limit():
    model = SchwarzschildModel(mass=1e-9)
    sol = find_geodesic(0, R_INIT, R_FINAL, PHI_FINAL, model=model, rng=np.random.default_rng(1))

    assert sol.valid
    assert math.isclose(sol.ksi, calc_flat_ksi(R_INIT, R_FINAL, PHI_FINAL), abs_tol=1e-4)
    # the straight ray crosses the y axis at 40 tan(pi - ksi)
    assert abs(R_INIT * math.tan(math.pi - sol.ksi) - R_FINAL) < 5e-3


def test_indirect_image_wraps_around():
    sol = find_geodesic(1, R_INIT, R_FINAL, 2.0 * math.pi - PHI_FINAL, rng=np.random.default_rng(2))
    model = SchwarzschildModel()

    assert sol.valid
    assert math.pi / 2 <= sol.ksi <= math.pi - model.ksi_crit(R_INIT)
    assert abs(sol.dr_err) < 1e-2


def test_target_inside_horizon_margin_is_invalid():
    config = SolverConfig(max_random_tries=20)
    sol = find_geodesic(0, R_INIT, 2.005, PHI_FINAL, config=config, rng=np.random.default_rng(3))

    assert not sol.valid
    assert sol.reason is not None
    assert sol.count < config.max_tries


def test_iteration_budget_reported():
    config = SolverConfig(max_tries=3)
    sol = find_geodesic(0, R_INIT, R_FINAL, PHI_FINAL, config=config, rng=np.random.default_rng(4))

    assert not sol.valid
    assert sol.reason == "max_tries"
    assert sol.count == 3


def test_direction_varies_continuously_with_azimuth():
    phis = [0.6, 0.9, 1.2, 1.5]
    sols = [find_geodesic(0, R_INIT, R_FINAL, phi, rng=np.random.default_rng(5)) for phi in phis]

    assert all(s.valid for s in sols)
    ksis = np.array([s.ksi for s in sols])
    assert np.all((ksis > math.pi / 2) & (ksis < math.pi))
    assert np.max(np.abs(np.diff(ksis))) < 0.15

    heading = np.array([math.atan2(s.velocity[1], s.velocity[0]) for s in sols])
    assert np.max(np.abs(np.diff(np.unwrap(heading)))) < 0.5


if __name__ == "__main__":
    test_flat_space_limit()
