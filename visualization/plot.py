import os

import matplotlib.pyplot as plt
import numpy as np
from matplotlib import cm
from matplotlib.collections import LineCollection

from lutgen.utils import trajectory_to_cartesian


def _make_colour_segments(xs, ys, cmap='plasma'):
    """
    Split a poly-line into segments and colour them by index.
    """
    cmap = plt.get_cmap(cmap)
    pts = np.column_stack((xs, ys))
    segs = np.stack([pts[:-1], pts[1:]], axis=1)
    norm = plt.Normalize(0, max(len(xs) - 2, 1))
    rgba = cmap(norm(np.arange(len(xs) - 1)))
    lc = LineCollection(segs, colors=rgba, linewidth=2)
    return lc, norm, cmap


def _ensure_dir(out_path):
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)


def plot_geodesic_df(df, rs=2.0, out_path='images/geodesic_trace.png', cmap='plasma'):
    """
    Two-panel diagnostic for a trace produced by ``rungekutta.odeint``
    (columns x, t, r, phi, ut, ur, uphi):
    - top-down x-y trajectory, coloured by step index, with the horizon and
      the photon sphere
    - r against the affine parameter
    """
    xs, ys, _ = trajectory_to_cartesian(df['r'].values, df['phi'].values)

    fig, (ax_xy, ax_r) = plt.subplots(1, 2, figsize=(12, 6))

    lc, norm, cmap = _make_colour_segments(xs, ys, cmap=cmap)
    ax_xy.add_collection(lc)
    circ = np.linspace(0, 2 * np.pi, 400)
    ax_xy.fill(rs * np.cos(circ), rs * np.sin(circ), color='black', label='Horizon')
    ax_xy.plot(1.5 * rs * np.cos(circ), 1.5 * rs * np.sin(circ), color='gray',
               linestyle='--', alpha=0.5, label='Photon sphere')
    ax_xy.plot(xs[0], ys[0], 'ro', label='Start')
    ax_xy.set_xlabel('x')
    ax_xy.set_ylabel('y')
    ax_xy.set_title('Null geodesic (x-y)')
    ax_xy.axis('equal')
    ax_xy.autoscale()
    ax_xy.legend()

    ax_r.plot(df['x'].values, df['r'].values, color='orange')
    ax_r.axhline(rs, color='black', lw=1)
    ax_r.set_xlabel('affine parameter')
    ax_r.set_ylabel('r')
    ax_r.set_title('Radius along the geodesic')

    plt.colorbar(cm.ScalarMappable(norm=norm, cmap=cmap), ax=ax_xy, label='step index')
    fig.tight_layout()
    _ensure_dir(out_path)
    fig.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved geodesic plot to {out_path}")


def plot_lut_maps(table, out_path='images/lut_maps.png'):
    """
    Image plots of the emission angle and the light travel time of both LUT
    buffers.  Invalid cells (dt = -1) are masked.
    """
    fig, axes = plt.subplots(2, 2, figsize=(10, 8))
    rmin, rmax = table.radial_range()
    extent = [0.0, np.pi, 0, table.nr - 1]

    for order, data in enumerate((table.data0, table.data1)):
        invalid = data[..., 1] < 0.0
        ksi = np.ma.masked_where(invalid, np.degrees(data[..., 0]))
        dt = np.ma.masked_where(invalid, data[..., 1])

        im = axes[order, 0].imshow(ksi, origin='lower', aspect='auto', extent=extent, cmap='viridis')
        axes[order, 0].set_title(f'order {order}: ksi [deg]')
        fig.colorbar(im, ax=axes[order, 0])

        im = axes[order, 1].imshow(dt, origin='lower', aspect='auto', extent=extent, cmap='magma')
        axes[order, 1].set_title(f'order {order}: |dt|')
        fig.colorbar(im, ax=axes[order, 1])

        for ax in axes[order]:
            ax.set_xlabel('phi (grid)')
            ax.set_ylabel('radial index')

    fig.suptitle(f'LUT r_obs={table.camera_position:g}, r in [{rmin:g}, {rmax:g}], '
                 f'{table.nr}x{table.nphi}')
    fig.tight_layout()
    _ensure_dir(out_path)
    fig.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved LUT maps to {out_path}")


def plot_line_distortion(df, out_path='images/line_distortion.png'):
    """Straight world-space segment against its lensed pinhole projection."""
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(df['py'].values, df['pz'].values, 'b.-', label='World segment (y, z)')
    ax.plot(df['cx'].values, df['cy'].values, 'o-', color='orange', label='Lensed projection')
    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_title('Line distortion')
    ax.legend()
    _ensure_dir(out_path)
    fig.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved line distortion plot to {out_path}")
