"""
Schwarzschild Lookup-Table Generator
====================================

Precomputes null geodesics around a Schwarzschild black hole and stores the
emission angle, light travel time and exit direction for a grid of target
points, for use by a renderer that bends geometry by gravitational lensing.

Modules:
    - utils:       Vector/basis helpers and coordinate conversions
    - rungekutta:  Cash-Karp adaptive Runge-Kutta integrator
    - blackhole:   Geodesic model interface and the Schwarzschild model
    - geodesic:    Shooting root-finder for the emission angle
    - raytracing:  LUT grid generation (parallel over radial rows)
    - lutfile:     Binary LUT file format (write / read / query)
    - distortion:  Line-distortion diagnostic
"""

__version__ = "0.1.0"
