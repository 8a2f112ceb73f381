# raytracing.py
import logging
import math
import os
import time
from concurrent.futures import ProcessPoolExecutor, as_completed

import numpy as np
from tqdm import tqdm

from lutgen.blackhole import SchwarzschildModel
from lutgen.geodesic import DEFAULT_CONFIG, find_geodesic
from lutgen.lutfile import (INVALID_DT, LUT_RECORD, LookupTable, azimuth_samples,
                            make_header, radial_samples, write_lut)


def _record(solution):
    """LUT record (ksi, |dt| or -1, ux, uy) of one search.

    The buffers are sampled with linear filtering, so every slot of an
    invalid record must stay finite.
    """
    dt = abs(solution.dt) if solution.valid else INVALID_DT
    ux, uy = solution.velocity
    if not (math.isfinite(ux) and math.isfinite(uy)):
        ux, uy = 0.0, 0.0
    return solution.ksi, dt, ux, uy


def _compute_row(ir, r, phis, r_init, model, config, seed):
    """
    Solve both image orders for every azimuth of radial row *ir*.
    Runs inside a worker process; every cell draws from its own generator so
    the result does not depend on the scheduling.
    """
    nphi = len(phis)
    row0 = np.zeros((nphi, LUT_RECORD), dtype=np.float32)
    row1 = np.zeros((nphi, LUT_RECORD), dtype=np.float32)
    n_valid = [0, 0]
    iterations = 0

    for ip, phi1 in enumerate(phis):
        rng = np.random.default_rng([seed, ir * nphi + ip])

        sol = find_geodesic(0, r_init, r, phi1, model=model, config=config, rng=rng)
        logging.debug("0: %4d %4d  %14.8f %14.8f %14.8f %14.8f %14.8e %2d %4d", ir, ip, r, phi1,
                      math.degrees(sol.ksi), sol.dt, sol.dr_err, 1 if sol.valid else -1, sol.count)
        row0[ip] = _record(sol)
        n_valid[0] += sol.valid
        iterations += sol.count

        phi2 = 2.0 * math.pi - phi1
        sol = find_geodesic(1, r_init, r, phi2, model=model, config=config, rng=rng)
        logging.debug("1: %4d %4d  %14.8f %14.8f %14.8f %14.8f %14.8e %2d %4d", ir, ip, r, phi2,
                      math.degrees(sol.ksi), sol.dt, sol.dr_err, 1 if sol.valid else -1, sol.count)
        row1[ip] = _record(sol)
        n_valid[1] += sol.valid
        iterations += sol.count

    return ir, row0, row1, n_valid, iterations


def compute_lut(r_init, r_min, r_max, nr, nphi, model=None, config=DEFAULT_CONFIG,
                workers=None, seed=0, progress=True):
    """
    Compute both LUT buffers.

    Rows of the (Nr, Nphi) grid are independent and are distributed over a
    ProcessPoolExecutor with *workers* processes (default: one per core);
    ``workers=1`` computes everything in the calling process.

    Returns (lut0, lut1, stats) where lut0/lut1 are (nr, nphi, 4) float32
    arrays and stats counts valid cells and bisection iterations.
    """
    if nr < 2 or nphi < 2:
        raise ValueError(f"LUT needs at least 2x2 samples, got Nr={nr}, Nphi={nphi}")
    if model is None:
        model = SchwarzschildModel()
    if workers is None:
        workers = os.cpu_count() or 1

    radii = radial_samples(model.rs, r_min, r_max, nr)
    phis = azimuth_samples(nphi)
    lut0 = np.zeros((nr, nphi, LUT_RECORD), dtype=np.float32)
    lut1 = np.zeros((nr, nphi, LUT_RECORD), dtype=np.float32)
    stats = {'valid0': 0, 'valid1': 0, 'iterations': 0, 'cells': nr * nphi}

    def _store(result):
        ir, row0, row1, n_valid, iterations = result
        lut0[ir] = row0
        lut1[ir] = row1
        stats['valid0'] += n_valid[0]
        stats['valid1'] += n_valid[1]
        stats['iterations'] += iterations

    if workers == 1:
        for ir in tqdm(range(nr), desc="Computing LUT rows", unit="row", disable=not progress):
            _store(_compute_row(ir, radii[ir], phis, r_init, model, config, seed))
    else:
        with ProcessPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_compute_row, ir, radii[ir], phis, r_init, model, config, seed)
                       for ir in range(nr)]
            for future in tqdm(as_completed(futures), total=nr, desc="Computing LUT rows",
                               unit="row", disable=not progress):
                _store(future.result())

    return lut0, lut1, stats


def gen_lut(r_init, r_min, r_max, nr, nphi, filename, model=None, config=DEFAULT_CONFIG,
            workers=None, seed=0, progress=True):
    """
    Generate the lookup table for a source at *r_init* over radii
    [*r_min*, *r_max*] and write it to *filename*.

    Returns the LookupTable, or None when the file could not be written.
    """
    logging.info("Gen LUT for rInit = %f, range=[%f,%f], Nr=%u, Nphi=%u", r_init, r_min, r_max, nr, nphi)
    t1 = time.perf_counter()
    lut0, lut1, stats = compute_lut(r_init, r_min, r_max, nr, nphi, model=model, config=config,
                                    workers=workers, seed=seed, progress=progress)
    logging.info("calc: %.3f s", time.perf_counter() - t1)
    logging.info("valid cells: order 0 %d/%d, order 1 %d/%d, %d bisection iterations",
                 stats['valid0'], stats['cells'], stats['valid1'], stats['cells'], stats['iterations'])

    header = make_header(nr, nphi, r_min, r_max, r_init)
    if not write_lut(filename, header, lut0, lut1):
        return None
    return LookupTable(header=header, data0=lut0, data1=lut1)
