#blackhole.py
import abc
import logging
import math

import numpy as np
from numba import njit

logging.getLogger('numba').setLevel(logging.ERROR)

# ---
# GEOMETRIZED UNITS: G = c = 1
# State vector: y = [t, r, phi, u^t, u^r, u^phi]  (equatorial plane)
# ---


class GeodesicModel(abc.ABC):
    """
    Spacetime-specific callbacks used by the Runge-Kutta drivers and the
    shooting root-finder.  Subclass this to substitute another spacetime.
    """

    @abc.abstractmethod
    def derivs(self, x, y):
        """Right-hand side dy/dlambda at affine parameter *x*."""

    @abc.abstractmethod
    def break_condition(self, y):
        """True when the integration must be aborted (capture / escape)."""

    @abc.abstractmethod
    def found(self, y, yprev, ytarget):
        """Fraction t in (0, 1] between *yprev* and *y* at which the target is
        crossed, or None when the step did not cross it."""

    @abc.abstractmethod
    def initialize(self, r, ksi):
        """Return (y0, degenerate) for a photon leaving radius *r* at local
        angle *ksi* from the outward radial direction."""

    @abc.abstractmethod
    def ksi_crit(self, r):
        """Critical emission angle at radius *r*."""


# ------------------------- Geodesic RHS (compiled) ---------------------------
@njit(cache=True, error_model='numpy')
def _schwarzschild_rhs(y, rs):
    r = y[1]
    ut = y[3]
    ur = y[4]
    up = y[5]

    dydx = np.empty(6)
    dydx[0] = ut
    dydx[1] = ur
    dydx[2] = up
    dydx[3] = -rs / (r * (r - rs)) * ut * ur
    dydx[4] = (-0.5 * rs * (r - rs) / (r * r * r) * ut * ut
               + 0.5 * rs / (r * (r - rs)) * ur * ur
               + (r - rs) * up * up)
    dydx[5] = -2.0 / r * ur * up
    return dydx


class SchwarzschildModel(GeodesicModel):
    """
    Null geodesics of a Schwarzschild black hole in the equatorial plane.
    mass: in geometrized units (r_s = 2M)
    horizon_eps: integration stops when r < r_s + horizon_eps
    r_max: integration stops when r > r_max
    """
    def __init__(self, mass=1.0, horizon_eps=1e-2, r_max=1000.0):
        self.mass = mass
        self.rs = 2 * mass  # Schwarzschild radius (r_s = 2M)
        self.horizon_eps = horizon_eps
        self.r_max = r_max

    def __repr__(self):
        return (f"SchwarzschildModel(mass={self.mass}, horizon_eps={self.horizon_eps}, "
                f"r_max={self.r_max})")

    def derivs(self, x, y):
        return _schwarzschild_rhs(y, self.rs)

    def break_condition(self, y):
        r = abs(y[1])
        if not math.isfinite(r):
            return True
        return r < self.rs + self.horizon_eps or r > self.r_max

    def found(self, y, yprev, ytarget):
        if y[2] > ytarget[2]:
            return (ytarget[2] - yprev[2]) / (y[2] - yprev[2])
        return None

    def initialize(self, r, ksi):
        w = math.sqrt(1.0 - self.rs / r)
        y = np.array([0.0, r, 0.0, -1.0 / w, math.cos(ksi) * w, math.sin(ksi) / r])
        return y, self.break_condition(y)

    def ksi_crit(self, r):
        # sin^2(ksi_c) = 27/4 (r_s/r)^2 (1 - r_s/r): photon-sphere boundary
        sk2 = 6.75 * self.rs * self.rs / (r * r) * (1.0 - self.rs / r)
        return math.asin(math.sqrt(sk2))
