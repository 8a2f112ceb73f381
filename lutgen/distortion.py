# distortion.py
import logging

import numpy as np
import pandas as pd

from lutgen.blackhole import SchwarzschildModel
from lutgen.geodesic import DEFAULT_CONFIG, find_geodesic
from lutgen.utils import (calc_base, calc_base_comp, calc_coords,
                          calc_perspective_projection, mix)

LINE_START = (-5.0, 3.5, -2.0)
LINE_END = (-5.0, 3.5, 3.0)


def calc_line_distortion(r_init, p1=LINE_START, p2=LINE_END, n=21, model=None,
                         config=DEFAULT_CONFIG, seed=0):
    """
    Follow a straight world-space segment through the lens.

    For *n* points on p1 -> p2 the direct-image geodesic from the observer at
    (r_init, 0, 0) is solved in the plane spanned by the x axis and the point;
    the apparent position at distance |dt| along the emission direction is
    then projected with the pinhole camera.

    Returns a DataFrame with columns
    py, pz, cx, cy, r, phi, ksi, dt, qx, qy, qz, valid.
    """
    if model is None:
        model = SchwarzschildModel()
    p1 = np.asarray(p1, dtype=np.float64)
    p2 = np.asarray(p2, dtype=np.float64)
    step = 1.0 / (n - 1)
    rows = []

    for i in range(n):
        p = mix(p1, p2, i * step)
        e1, e2 = calc_base(p)
        r, phi = calc_base_comp(e1, e2, p)
        sol = find_geodesic(0, r_init, r, phi, model=model, config=config,
                            rng=np.random.default_rng([seed, i]))
        q = calc_coords(e1, e2, sol.ksi, abs(sol.dt))
        cx, cy = calc_perspective_projection(q)
        logging.debug("%f %f %f  %f %f %f", r, sol.ksi, sol.dt, q[0], q[1], q[2])
        rows.append({
            'py': p[1], 'pz': p[2], 'cx': cx, 'cy': cy,
            'r': r, 'phi': phi, 'ksi': sol.ksi, 'dt': sol.dt,
            'qx': q[0], 'qy': q[1], 'qz': q[2], 'valid': sol.valid,
        })

    return pd.DataFrame(rows)
