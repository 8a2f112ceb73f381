#main.py
import logging
import math
import os

import numpy as np

from config import parse_args
from lutgen.blackhole import SchwarzschildModel
from lutgen.distortion import calc_line_distortion
from lutgen.geodesic import SolverConfig, find_geodesic
from lutgen.lutfile import lut_filename
from lutgen.raytracing import gen_lut
from lutgen.rungekutta import odeint
from lutgen.utils import to_degree, to_radian
from visualization.plot import plot_geodesic_df, plot_line_distortion, plot_lut_maps

# ---
# GEOMETRIZED UNITS: G = c = 1
# Schwarzschild radius: r_s = 2M
# ---


def run_lut(args, model, solver):
    filename = os.path.join(args.output_dir, lut_filename(args.observer_distance, args.nr, args.nphi))
    table = gen_lut(args.observer_distance, args.rmin, args.rmax, args.nr, args.nphi, filename,
                    model=model, config=solver, workers=args.workers, seed=args.seed)
    if table is None:
        return 1
    if args.csv:
        csv_path = os.path.splitext(filename)[0] + '.csv'
        table.to_frame(rs=model.rs).to_csv(csv_path, index=False)
        logging.info("Saved %s", csv_path)
    if args.plot:
        plot_lut_maps(table, out_path=os.path.join(args.output_dir, 'images', 'lut_maps.png'))
    return 0


def run_trace(args, model):
    y0, degenerate = model.initialize(10.0, to_radian(152))
    if degenerate:
        logging.warning("Initial state already satisfies the break condition")
    df = odeint(model, y0, 1000, 1e-8, 0.01, 1e-6)
    logging.info("Trace: %d steps, final r=%.6f phi=%.6f", len(df) - 1, df['r'].iloc[-1], df['phi'].iloc[-1])
    csv_path = os.path.join(args.output_dir, 'geodesic_trace.csv')
    df.to_csv(csv_path, index=False)
    logging.info("Saved %s", csv_path)
    if args.plot:
        plot_geodesic_df(df, rs=model.rs, out_path=os.path.join(args.output_dir, 'images', 'geodesic_trace.png'))
    return 0


def run_point(args, model, solver):
    rf = math.hypot(args.x, args.y)
    phi = abs(math.atan2(args.y, args.x))
    phif = phi if args.order == 0 else 2.0 * math.pi - phi
    sol = find_geodesic(args.order, args.observer_distance, rf, phif, model=model, config=solver,
                        rng=np.random.default_rng(args.seed))
    ksi_deg = to_degree(sol.ksi) if args.order == 0 else 180.0 - to_degree(sol.ksi)
    print(f"{ksi_deg:12.8f} {sol.dt:12.8f} {sol.dr_err:12.8f} {sol.count:4d}")
    if not sol.valid:
        logging.warning("No geodesic found (%s)", sol.reason)
        return 1
    return 0


def run_distortion(args, model, solver):
    df = calc_line_distortion(args.observer_distance, model=model, config=solver, seed=args.seed)
    print(df[['py', 'pz', 'cx', 'cy']].to_string(index=False))
    if args.csv:
        csv_path = os.path.join(args.output_dir, 'line_distortion.csv')
        df.to_csv(csv_path, index=False)
        logging.info("Saved %s", csv_path)
    if args.plot:
        plot_line_distortion(df, out_path=os.path.join(args.output_dir, 'images', 'line_distortion.png'))
    return 0


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s: %(message)s')

    model = SchwarzschildModel(mass=args.bh_mass)
    solver = SolverConfig(max_tries=args.max_tries, eps_abs=args.eps_abs, max_num_steps=args.max_steps)
    os.makedirs(args.output_dir, exist_ok=True)

    if args.mode == 'trace':
        return run_trace(args, model)
    if args.mode == 'point':
        return run_point(args, model, solver)
    if args.mode == 'distortion':
        return run_distortion(args, model, solver)

    logging.info("Generate lookup table with %s worker process(es)...", args.workers or os.cpu_count())
    return run_lut(args, model, solver)


if __name__ == "__main__":
    raise SystemExit(main())
