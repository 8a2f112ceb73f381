# lutfile.py
"""
Binary lookup-table format.

    offset 0   u32  Nr                 number of radial samples
    offset 4   u32  Nphi               number of azimuth samples
    offset 8   f32  rmin               minimum radius
    offset 12  f32  rmax               maximum radius
    offset 16  f32  observerDistance   source / camera radius
    offset 20  f32[Nr*Nphi*4]          order 0: (ksi, |dt| or -1, ux, uy)
    ...        f32[Nr*Nphi*4]          order 1, same layout

Little endian, no padding, both buffers row-major by (ir, iphi).
"""
import logging
import math
import os
from dataclasses import dataclass

import numpy as np
import pandas as pd

LUT_HEADER_DTYPE = np.dtype([
    ('nr', '<u4'),
    ('nphi', '<u4'),
    ('rmin', '<f4'),
    ('rmax', '<f4'),
    ('distance', '<f4'),
])
LUT_DATA_DTYPE = np.dtype('<f4')
LUT_RECORD = 4
INVALID_DT = -1.0

PHI_EPS = 1e-4  # azimuth grid spans [PHI_EPS, pi - PHI_EPS]


def lut_filename(r_init, nr, nphi):
    return f"lut_r{int(r_init)}_{nr}x{nphi}.dat"


def expected_file_size(nr, nphi):
    return LUT_HEADER_DTYPE.itemsize + 2 * nr * nphi * LUT_RECORD * LUT_DATA_DTYPE.itemsize


# -----------------------------------------------------------------------------
# Grid layout
# -----------------------------------------------------------------------------
def radial_samples(rs, rmin, rmax, nr):
    """Radii of the grid rows, uniform in x = rs / r from rs/rmax to rs/rmin."""
    x = np.linspace(rs / rmax, rs / rmin, nr)
    return rs / x


def azimuth_samples(nphi, eps=PHI_EPS):
    return np.linspace(eps, math.pi - eps, nphi)


def make_header(nr, nphi, rmin, rmax, distance):
    header = np.zeros((), dtype=LUT_HEADER_DTYPE)
    header['nr'] = nr
    header['nphi'] = nphi
    header['rmin'] = rmin
    header['rmax'] = rmax
    header['distance'] = distance
    return header


@dataclass
class LookupTable:
    """
    In-memory LUT as consumed by the renderer.
    data0, data1 : (Nr, Nphi, 4) float32 arrays for the direct and the
                   indirect image; as textures they are Nphi wide, Nr high.
    """
    header: np.ndarray
    data0: np.ndarray
    data1: np.ndarray

    @property
    def nr(self):
        return int(self.header['nr'])

    @property
    def nphi(self):
        return int(self.header['nphi'])

    @property
    def camera_position(self):
        return float(self.header['distance'])

    def radial_range(self):
        return float(self.header['rmin']), float(self.header['rmax'])

    def scaled_range(self, rs):
        """(xmin, xscale) mapping x = rs / r onto [0, 1] texture space."""
        rmin, rmax = self.radial_range()
        xmax = rs / rmin
        xmin = rs / rmax
        return xmin, 1.0 / (xmax - xmin)

    def texture(self, idx):
        if idx == 0:
            return self.data0
        if idx == 1:
            return self.data1
        return None

    def lookup(self, order, r, phi, rs=2.0):
        """
        Bilinear sample of the *order* buffer at radius *r* and grid azimuth
        *phi* (the order-1 buffer is stored at the mirrored azimuth, i.e. the
        target 2*pi - phi).  Returns None outside the grid or next to an
        invalid cell.
        """
        data = self.texture(order)
        if data is None:
            return None
        xmin, xscale = self.scaled_range(rs)
        u = (rs / r - xmin) * xscale * (self.nr - 1)
        v = (phi - PHI_EPS) / (math.pi - 2 * PHI_EPS) * (self.nphi - 1)
        tol = 1e-9  # round-off at the grid edges
        if not (-tol <= u <= self.nr - 1 + tol and -tol <= v <= self.nphi - 1 + tol):
            return None
        u = min(max(u, 0.0), self.nr - 1)
        v = min(max(v, 0.0), self.nphi - 1)

        i0 = min(int(u), self.nr - 2)
        j0 = min(int(v), self.nphi - 2)
        fu, fv = u - i0, v - j0
        corners = data[i0:i0 + 2, j0:j0 + 2].astype(np.float64)
        if np.any(corners[..., 1] < 0.0):
            return None
        top = corners[0, 0] * (1.0 - fv) + corners[0, 1] * fv
        bottom = corners[1, 0] * (1.0 - fv) + corners[1, 1] * fv
        return top * (1.0 - fu) + bottom * fu

    def to_frame(self, rs=2.0):
        """Long-form table with one row per (order, ir, iphi)."""
        rmin, rmax = self.radial_range()
        radii = radial_samples(rs, rmin, rmax, self.nr)
        phis = azimuth_samples(self.nphi)
        ir, ip = np.meshgrid(np.arange(self.nr), np.arange(self.nphi), indexing='ij')
        frames = []
        for order, data in enumerate((self.data0, self.data1)):
            phi = phis[ip.ravel()]
            frames.append(pd.DataFrame({
                'order': order,
                'ir': ir.ravel(),
                'iphi': ip.ravel(),
                'r': radii[ir.ravel()],
                'phi': phi if order == 0 else 2.0 * np.pi - phi,
                'ksi': data[..., 0].ravel(),
                'dt': data[..., 1].ravel(),
                'ux': data[..., 2].ravel(),
                'uy': data[..., 3].ravel(),
                'valid': data[..., 1].ravel() >= 0.0,
            }))
        return pd.concat(frames, ignore_index=True)


def write_lut(path, header, lut0, lut1):
    """
    Write header and both buffers.  Returns False (after logging) when the file
    cannot be written.
    """
    try:
        with open(path, 'wb') as fh:
            fh.write(np.asarray(header, dtype=LUT_HEADER_DTYPE).tobytes())
            fh.write(np.ascontiguousarray(lut0, dtype=LUT_DATA_DTYPE).tobytes())
            fh.write(np.ascontiguousarray(lut1, dtype=LUT_DATA_DTYPE).tobytes())
    except OSError as e:
        logging.error("Cannot write LUT '%s': %s", path, e)
        return False
    logging.info("Wrote LUT '%s' (%d bytes)", path, os.path.getsize(path))
    return True


def read_lut(path):
    """Load and validate a LUT file.  Raises ValueError for malformed files."""
    raw = np.fromfile(path, dtype=np.uint8)
    if raw.size < LUT_HEADER_DTYPE.itemsize:
        raise ValueError(f"LUT file '{path}' not valid: {raw.size} bytes, no header")

    header = np.frombuffer(raw[:LUT_HEADER_DTYPE.itemsize].tobytes(), dtype=LUT_HEADER_DTYPE)[0]
    nr, nphi = int(header['nr']), int(header['nphi'])
    if raw.size != expected_file_size(nr, nphi):
        raise ValueError(f"LUT file '{path}' has no valid data size: {raw.size} bytes "
                         f"for Nr={nr}, Nphi={nphi}")

    data = np.frombuffer(raw[LUT_HEADER_DTYPE.itemsize:].tobytes(), dtype=LUT_DATA_DTYPE)
    n = nr * nphi * LUT_RECORD
    lut0 = data[:n].reshape(nr, nphi, LUT_RECORD).copy()
    lut1 = data[n:].reshape(nr, nphi, LUT_RECORD).copy()
    logging.info("Successfully loaded LUT '%s' (Nr:%d, Nphi:%d).", path, nr, nphi)
    return LookupTable(header=np.array(header, dtype=LUT_HEADER_DTYPE), data0=lut0, data1=lut1)
