# utils.py  --------------------------------------------------------------
import math

import numpy as np
from einsteinpy.coordinates.utils import spherical_to_cartesian_fast


def to_radian(deg):
    return deg / 180.0 * math.pi


def to_degree(rad):
    return rad / math.pi * 180.0


def mix(a, b, t):
    """Linear blend a*(1-t) + t*b. *t* is not clamped."""
    return a * (1.0 - t) + t * b


# -----------------------------------------------------------------------------
# 3-vector helpers
# -----------------------------------------------------------------------------
def cross(a, b):
    return np.array([
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    ], dtype=np.float64)


def dot(a, b):
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def normalize(v):
    """Return v / |v|.  The caller guarantees a non-zero length."""
    v = np.asarray(v, dtype=np.float64)
    return v * (1.0 / math.sqrt(dot(v, v)))


# -----------------------------------------------------------------------------
# Observer basis: e1 along the black hole -> observer axis (+x), e2 in the
# plane spanned by e1 and the point p.
# -----------------------------------------------------------------------------
def calc_base(p):
    """Return the orthonormal basis (e1, e2) of the plane through the origin,
    the +x axis and the point *p*.

    e1 is always the world x axis; e2 = normalize((e1 x p) x e1).  The basis
    is undefined when *p* is parallel to the x axis.
    """
    e1 = np.array([1.0, 0.0, 0.0])
    n = cross(e1, p)
    e2 = normalize(cross(n, e1))
    return e1, e2


def calc_base_comp(e1, e2, p):
    """Polar components (r, phi) of *p* in the (e1, e2) plane."""
    x = dot(p, e1)
    y = dot(p, e2)
    return math.sqrt(x * x + y * y), math.atan2(y, x)


def calc_coords(e1, e2, ksi, dist):
    """Point at polar angle *ksi* and distance *dist* in the (e1, e2) plane."""
    x = dist * math.cos(ksi)
    y = dist * math.sin(ksi)
    return x * np.asarray(e1) + y * np.asarray(e2)


def calc_perspective_projection(p):
    """Pinhole projection of a camera-space point looking along -x."""
    cx = p[1] / (-p[0]) * 40
    cy = p[2] / (-p[0]) * 40
    return cx, cy


# -----------------------------------------------------------------------------
# Equatorial-plane conversions
# -----------------------------------------------------------------------------
def polar_velocity_to_cartesian(r, phi, u_r, u_phi):
    """Cartesian (u_x, u_y) of a velocity given as (dr, dphi) at (r, phi)."""
    c, s = math.cos(phi), math.sin(phi)
    return u_r * c - u_phi * r * s, u_r * s + u_phi * r * c


def trajectory_to_cartesian(r, phi):
    """Map equatorial (r, phi) samples to Cartesian (x, y, z) arrays."""
    r = np.asarray(r, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    theta = np.full_like(r, np.pi / 2)
    _, x, y, z = spherical_to_cartesian_fast(0.0, r, theta, phi)
    return x, y, z
