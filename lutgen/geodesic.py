# geodesic.py
"""
Shooting method for the emission angle of a light ray that connects a source
at radius ``r_init`` (azimuth 0) with a target point ``(r_final, phi_final)``.

The search brackets the emission angle ``ksi`` and bisects on the sign of the
radial mismatch ``dr = r(phi_final) - r_final``.  ``order`` selects the image:
0 is the direct image, 1 the first indirect image that loops around the hole.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from lutgen.blackhole import SchwarzschildModel
from lutgen.rungekutta import integrate
from lutgen.utils import mix, polar_velocity_to_cartesian


@dataclass(frozen=True)
class SolverConfig:
    """Numerical constants of the shooting search.

    max_random_tries : resamples of an invalid trial angle per iteration
    max_tries        : bisection iterations before the search gives up
    hit_radius       : convergence tolerance on the bracket mismatch gap
    ksi_eps          : convergence tolerance on the bracket width [rad]
    max_num_steps    : step budget of one integration
    eps_abs          : error tolerance of the step controller
    h_init, h_min    : initial / minimal affine step
    invalid_mismatch : mismatch magnitude assigned to invalid bracket ends
    exact_hit        : mismatch treated as an exact hit
    max_residual     : largest final mismatch reported as valid
    """
    max_random_tries: int = 3000
    max_tries: int = 200
    hit_radius: float = 1e-5
    ksi_eps: float = 1e-9
    max_num_steps: int = 10000
    eps_abs: float = 1e-10
    h_init: float = 0.01
    h_min: float = 1e-8
    invalid_mismatch: float = 1e10
    exact_hit: float = 1e-15
    max_residual: float = 1e-2


@dataclass
class GeodesicHit:
    """One shot: where the ray with a given *ksi* reaches the target azimuth."""
    valid: bool
    dr: Optional[float] = None
    dt: Optional[float] = None
    velocity: Optional[Tuple[float, float]] = None


@dataclass
class GeodesicSolution:
    """Result of :func:`find_geodesic`.

    ksi              : emission angle from the outward radial direction [rad]
    dt               : coordinate time of the crossing (negative: past-directed)
    dr_err           : radial mismatch of the returned ray
    count            : bisection iterations used
    velocity         : Cartesian direction of the ray at the target
    bracket          : final (ksiA, ksiB)
    bracket_mismatch : final (drA, drB)
    reason           : why an invalid search stopped, None when valid
    """
    ksi: float
    dt: float
    dr_err: float
    count: int
    valid: bool
    velocity: Tuple[float, float]
    bracket: Tuple[float, float]
    bracket_mismatch: Tuple[float, float]
    reason: Optional[str] = None


DEFAULT_CONFIG = SolverConfig()


def calc_geodesic_up_to(model, r_init, ksi, r_final, phi_final, config=DEFAULT_CONFIG):
    """Integrate the ray leaving *r_init* at angle *ksi* until its azimuth
    reaches *phi_final*."""
    y0, _ = model.initialize(r_init, ksi)
    ytarget = np.array([1e10, r_final, phi_final, 0.0, 0.0, 0.0])
    res = integrate(model, y0, ytarget, config.max_num_steps, config.eps_abs,
                    config.h_init, config.h_min)
    if not res.found:
        return GeodesicHit(valid=False)

    t, r, phi, _, ur, up = res.y
    return GeodesicHit(valid=True, dr=r - r_final, dt=t,
                       velocity=polar_velocity_to_cartesian(r, phi, ur, up))


def calc_flat_ksi(r_init, r_final, phi_final):
    """Emission angle of the straight line from (r_init, 0) to
    (r_final, phi_final), measured from the outward radial direction.

    The triangle (origin, source, target) has the side
    d^2 = r_init^2 + r_final^2 - 2 r_init r_final cos(phi_final); the angle at
    the source follows from the projections of d on the radial and azimuthal
    directions.
    """
    dx = r_final * math.cos(phi_final) - r_init
    dy = r_final * math.sin(phi_final)
    return math.atan2(dy, dx)


def _bracket(order, model, r_init):
    if order == 0:
        return 0.0, math.pi
    return math.pi / 2, math.pi - model.ksi_crit(r_init)


def find_geodesic(order, r_init, r_final, phi_final, model=None, config=DEFAULT_CONFIG, rng=None):
    """
    Find the emission angle of the order-*order* ray from *r_init* that hits
    (*r_final*, *phi_final*).

    Parameters
    ----------
    order : int
        0 for the direct image, 1 for the indirect image.
    r_init : float
        Source radius (the source sits at azimuth 0).
    r_final, phi_final : float
        Target point.
    model : GeodesicModel, optional
        Defaults to a Schwarzschild black hole with M = 1.
    config : SolverConfig
    rng : numpy.random.Generator, optional
        Source of the random resampling used to recover from invalid trial
        angles.  Pass a seeded generator for reproducible results.

    Returns
    -------
    GeodesicSolution
        Non-convergence is reported through ``valid=False``; no exception is
        raised.
    """
    if model is None:
        model = SchwarzschildModel()
    if rng is None:
        rng = np.random.default_rng()

    ksi_a, ksi_b = _bracket(order, model, r_init)
    hit_a = calc_geodesic_up_to(model, r_init, ksi_a, r_final, phi_final, config)
    hit_b = calc_geodesic_up_to(model, r_init, ksi_b, r_final, phi_final, config)
    dr_a = hit_a.dr if hit_a.valid else config.invalid_mismatch
    dr_b = hit_b.dr if hit_b.valid else -config.invalid_mismatch

    ksi_c, hit_c = ksi_a, hit_a
    dr_c = dr_a
    count = 0
    reason = None

    while abs(dr_a - dr_b) > config.hit_radius and abs(ksi_a - ksi_b) > config.ksi_eps \
            and count < config.max_tries:
        ksi_c = (ksi_a + ksi_b) * 0.5
        if count == 0:
            # straight-line seed; Schwarzschild rays are nearly straight far
            # from the horizon
            seed = calc_flat_ksi(r_init, r_final, phi_final)
            if min(ksi_a, ksi_b) < seed < max(ksi_a, ksi_b):
                ksi_c = seed

        hit_c = calc_geodesic_up_to(model, r_init, ksi_c, r_final, phi_final, config)
        random_count = 0
        while not hit_c.valid and random_count < config.max_random_tries:
            ksi_c = mix(ksi_a, ksi_b, rng.random())
            hit_c = calc_geodesic_up_to(model, r_init, ksi_c, r_final, phi_final, config)
            random_count += 1

        if not hit_c.valid:
            reason = "random_tries"
            logging.debug("order %d r=%.6f phi=%.6f: no integrable trial in [%.10f, %.10f]",
                          order, r_final, phi_final, ksi_a, ksi_b)
            break

        dr_c = hit_c.dr
        logging.debug("%04d %12.8f %12.8f %12.8f %14.6e %14.6e %14.6e %4d", count,
                      ksi_a, ksi_b, ksi_c, dr_a, dr_b, dr_c, random_count)

        if abs(dr_c) < config.exact_hit:
            break

        if dr_c * dr_a < 0.0:
            ksi_b, dr_b = ksi_c, dr_c
        else:
            ksi_a, dr_a = ksi_c, dr_c

        count += 1

    if reason is None:
        if count >= config.max_tries:
            reason = "max_tries"
        elif not hit_c.valid or abs(dr_c) > config.max_residual:
            reason = "residual"

    valid = reason is None
    return GeodesicSolution(
        ksi=ksi_c,
        dt=hit_c.dt if hit_c.valid else math.nan,
        dr_err=dr_c,
        count=count,
        valid=valid,
        velocity=hit_c.velocity if hit_c.valid else (math.nan, math.nan),
        bracket=(ksi_a, ksi_b),
        bracket_mismatch=(dr_a, dr_b),
        reason=reason,
    )
