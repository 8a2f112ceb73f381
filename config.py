import argparse


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Schwarzschild geodesic lookup-table generator")
    parser.add_argument('--mode', type=str, default='lut', choices=['lut', 'trace', 'point', 'distortion'],
                        help='lut: generate the table; trace: diagnostic single geodesic; '
                             'point: solve one target point; distortion: line distortion (default: lut)')
    # Grid
    parser.add_argument('--nr', type=int, default=32, help='Number of radial samples (default: 32)')
    parser.add_argument('--nphi', type=int, default=64, help='Number of azimuth samples (default: 64)')
    parser.add_argument('--rmin', type=float, default=2.5, help='Minimum target radius (default: 2.5)')
    parser.add_argument('--rmax', type=float, default=30.0, help='Maximum target radius (default: 30)')
    parser.add_argument('--observer-distance', type=float, default=40.0,
                        help='Radius of the observer / light source (default: 40)')
    parser.add_argument('--bh-mass', type=float, default=1.0, help='Black hole mass, r_s = 2M (default: 1)')
    # Solver
    parser.add_argument('--max-tries', type=int, default=200, help='Bisection iterations per search (default: 200)')
    parser.add_argument('--eps-abs', type=float, default=1e-10, help='Step controller tolerance (default: 1e-10)')
    parser.add_argument('--max-steps', type=int, default=10000, help='Step budget per integration (default: 10000)')
    # Execution
    parser.add_argument('--workers', type=int, default=None, help='Worker processes (default: one per core)')
    parser.add_argument('--seed', type=int, default=0, help='Base seed of the per-cell random generators (default: 0)')
    parser.add_argument('--output-dir', type=str, default='.', help='Directory for output files (default: .)')
    parser.add_argument('--plot', action='store_true', help='Save diagnostic plots under <output-dir>/images')
    parser.add_argument('--csv', action='store_true', help='Also export results as CSV')
    # point mode
    parser.add_argument('--x', type=float, default=0.0, help='Target x for --mode point')
    parser.add_argument('--y', type=float, default=10.0, help='Target y for --mode point')
    parser.add_argument('--order', type=int, default=1, choices=[0, 1], help='Image order for --mode point (default: 1)')
    parser.add_argument('--verbose', action='store_true', help='Log every step / bisection iteration')
    return parser.parse_args(argv)
