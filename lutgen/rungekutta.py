# rungekutta.py
"""
Runge-Kutta integration with adaptive step-size control (Cash-Karp embedded
5(4) pair, Numerical Recipes conventions).

The drivers are independent of the spacetime: everything problem specific is
supplied by a :class:`lutgen.blackhole.GeodesicModel`.
"""
import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

SAFETY = 0.9
PGROW = -0.2
PSHRNK = -0.25
ERRCON = 1.89e-4
TINY = 1.0e-30

# ------------------------- Cash-Karp tableau ---------------------------------
A2, A3, A4, A5, A6 = 0.2, 0.3, 0.6, 1.0, 0.875
B21 = 0.2
B31, B32 = 3.0 / 40.0, 9.0 / 40.0
B41, B42, B43 = 0.3, -0.9, 1.2
B51, B52, B53, B54 = -11.0 / 54.0, 2.5, -70.0 / 27.0, 35.0 / 27.0
B61, B62, B63, B64, B65 = (1631.0 / 55296.0, 175.0 / 512.0, 575.0 / 13824.0,
                           44275.0 / 110592.0, 253.0 / 4096.0)
C1, C3, C4, C6 = 37.0 / 378.0, 250.0 / 621.0, 125.0 / 594.0, 512.0 / 1771.0
DC1 = C1 - 2825.0 / 27648.0
DC3 = C3 - 18575.0 / 48384.0
DC4 = C4 - 13525.0 / 55296.0
DC5 = -277.0 / 14336.0
DC6 = C6 - 0.25

TRACE_COLUMNS = ['x', 't', 'r', 'phi', 'ut', 'ur', 'uphi']


@dataclass
class StepResult:
    y: np.ndarray
    x: float
    hdid: float
    hnext: float
    errmax: float


@dataclass
class IntegrationResult:
    """Outcome of :func:`integrate`.

    found : the target was crossed; *y* holds the interpolated crossing state
    broke : the model's break condition stopped the integration
    steps : number of accepted steps
    """
    found: bool
    y: np.ndarray
    steps: int
    broke: bool = False


def rkck(y, dydx, x, h, derivs):
    """Single Cash-Karp step. Returns the 5th-order solution and the embedded
    error estimate (difference to the 4th-order solution)."""
    ak2 = derivs(x + A2 * h, y + h * B21 * dydx)
    ak3 = derivs(x + A3 * h, y + h * (B31 * dydx + B32 * ak2))
    ak4 = derivs(x + A4 * h, y + h * (B41 * dydx + B42 * ak2 + B43 * ak3))
    ak5 = derivs(x + A5 * h, y + h * (B51 * dydx + B52 * ak2 + B53 * ak3 + B54 * ak4))
    ak6 = derivs(x + A6 * h, y + h * (B61 * dydx + B62 * ak2 + B63 * ak3 + B64 * ak4 + B65 * ak5))

    yout = y + h * (C1 * dydx + C3 * ak3 + C4 * ak4 + C6 * ak6)
    yerr = h * (DC1 * dydx + DC3 * ak3 + DC4 * ak4 + DC5 * ak5 + DC6 * ak6)
    return yout, yerr


def rkqs(y, dydx, x, htry, eps, yscal, derivs):
    """Adaptive step: retry with smaller steps until the scaled error is
    below *eps*, then propose the next step size."""
    h = htry
    while True:
        ytemp, yerr = rkck(y, dydx, x, h, derivs)
        errmax = np.max(np.abs(yerr / yscal)) / eps
        if errmax <= 1.0:
            break

        if np.isfinite(errmax):
            htemp = SAFETY * h * errmax ** PSHRNK
        else:
            htemp = 0.1 * h
        h = max(htemp, 0.1 * h) if h >= 0.0 else min(htemp, 0.1 * h)

        if x + h == x:
            # continue with the minimal step instead of spinning forever
            logging.warning("stepsize underflow in rkqs (x=%g, h=%g)", x, h)
            break

    if errmax > ERRCON:
        hnext = SAFETY * h * errmax ** PGROW
    else:
        hnext = 5.0 * h

    return StepResult(y=ytemp, x=x + h, hdid=h, hnext=hnext, errmax=errmax)


def interpolate(y, yprev, t):
    return yprev * (1.0 - t) + t * y


def odeint(model, ystart, max_steps, eps, h1, hmin):
    """
    Diagnostic driver: march up to *max_steps* adaptive steps and record the
    trace.  Each step is logged at DEBUG level.  Stops early when the model's
    break condition fires.

    Returns a DataFrame with columns x, t, r, phi, ut, ur, uphi.
    """
    y = np.array(ystart, dtype=np.float64)
    h = h1
    x = 0.0
    rows = []

    for _ in range(max_steps):
        rows.append((x, *y))
        logging.debug("%12.6f  %s", x, " ".join(f"{v:12.6f}" for v in y))

        dydx = model.derivs(x, y)
        yscal = np.abs(y) + np.abs(dydx * h) + TINY
        step = rkqs(y, dydx, x, h, eps, yscal, model.derivs)
        y, x = step.y, step.x

        if model.break_condition(y):
            rows.append((x, *y))
            break

        if abs(step.hnext) <= hmin:
            logging.warning("Step size too small in odeint (h=%g)", step.hnext)
        h = step.hnext

    return pd.DataFrame(rows, columns=TRACE_COLUMNS)


def integrate(model, ystart, ytarget, max_steps, eps, h1, hmin):
    """
    Production driver: march until the model reports that *ytarget* was
    crossed (success, state linearly interpolated to the crossing), until the
    break condition fires, or until *max_steps* is exhausted.  The last two
    are ordinary outcomes for unreachable trial directions and are reported
    through ``found=False``.

    *hmin* is accepted for symmetry with :func:`odeint`; the step controller
    itself reports underflow.
    """
    y = np.array(ystart, dtype=np.float64)
    h = h1
    x = 0.0

    for nstp in range(1, max_steps + 1):
        dydx = model.derivs(x, y)
        yprev = y
        yscal = np.abs(y) + np.abs(dydx * h) + TINY
        step = rkqs(y, dydx, x, h, eps, yscal, model.derivs)
        y, x = step.y, step.x

        if model.break_condition(y):
            return IntegrationResult(found=False, y=y, steps=nstp, broke=True)

        t = model.found(y, yprev, ytarget)
        if t is not None:
            return IntegrationResult(found=True, y=interpolate(y, yprev, t), steps=nstp)

        h = step.hnext

    return IntegrationResult(found=False, y=y, steps=max_steps)
