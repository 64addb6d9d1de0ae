# diagnostics.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import meshio
import numpy as np

from embedded_fd.core.mesh import Mesh
from embedded_fd.core.point import Axis, Location

log = logging.getLogger(__name__)


# -----------------------------
# I/O helpers
# -----------------------------

def save_npz(path: Path, **arrays: np.ndarray) -> None:
    """Save compressed .npz (creates parent dirs)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


# -----------------------------
# Array utilities
# -----------------------------

def grid_field(mesh: Mesh, u: np.ndarray) -> np.ndarray:
    """
    Cartesian part of a mesh vector as an (nz, ny, nx) array.

    Inserted border points are dropped.
    """
    mesh.check_vector(u, "u")
    nx, ny, nz = mesh.shape
    return np.asarray(u[: mesh.n_cartesian]).reshape(nz, ny, nx)


def _slice_2d(mesh: Mesh, u: np.ndarray, k: Optional[int]) -> np.ndarray:
    """(ny, nx) plane of u; the mid plane k = nz // 2 on 3D meshes unless given."""
    U = grid_field(mesh, u)
    nz = U.shape[0]
    if k is None:
        k = nz // 2
    if not 0 <= k < nz:
        raise ValueError(f"slice index k={k} outside [0, {nz})")
    return U[k]


def _resolve_extent(mesh: Mesh) -> Tuple[float, float, float, float]:
    """imshow extent = [xmin, xmax, ymin, ymax] of the box."""
    o, e = mesh.bounds
    return (float(o.x), float(e.x), float(o.y), float(e.y))


# -----------------------------
# Plotting
# -----------------------------

def plot_field(
    mesh: Mesh,
    u: np.ndarray,
    *,
    title: str = "",
    path: Optional[Path] = None,
    k: Optional[int] = None,
    mask_exterior: bool = True,
    vmin: float | None = None,
    vmax: float | None = None,
    cmap: str | None = None,
    show: bool = True,
    close: bool = True,
) -> None:
    """
    Plot a mesh field on the Cartesian points.

    1D meshes are drawn as a line, 2D meshes as an image, 3D meshes as the
    z = const plane with index k (mid plane by default).

    Parameters
    ----------
    mask_exterior:
        If True, EXTERIOR points are left blank.
    path:
        If provided, saves the figure to this path (parent dirs created).
    show:
        If True, calls plt.show() so notebooks display inline.
    close:
        If True, closes figure (avoid piling up in long notebook runs).
    """
    mesh.check_vector(u, "u")
    values = np.asarray(u, dtype=float).copy()
    if mask_exterior:
        values[mesh.locations == Location.EXTERIOR] = np.nan

    fig, ax = plt.subplots()

    if mesh.dim == 1:
        x = mesh.coords[: mesh.n_cartesian, Axis.X]
        ax.plot(x, values[: mesh.n_cartesian], "-o", ms=2)
        border = mesh.indices_with(Location.BORDER)
        if border.size:
            ax.plot(mesh.coords[border, Axis.X], values[border], "rx")
        ax.set_xlabel("x")
        ax.set_ylabel("u")
        ax.set_title(title)
    else:
        Z = _slice_2d(mesh, values, k)
        im = ax.imshow(
            Z,
            origin="lower",
            aspect="auto",
            vmin=vmin,
            vmax=vmax,
            cmap=cmap,
            extent=_resolve_extent(mesh),
        )
        fig.colorbar(im, ax=ax)
        if mesh.dim == 3:
            kk = mesh.shape[2] // 2 if k is None else k
            z = float(mesh.coords[mesh.index(0, 0, kk), Axis.Z])
            ax.set_title(f"{title} (z = {z:.3g})" if title else f"z = {z:.3g}")
        else:
            ax.set_title(title)
        ax.set_xlabel("x")
        ax.set_ylabel("y")

    fig.tight_layout()

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=200)

    if show:
        plt.show()

    if close:
        plt.close(fig)


def plot_convergence(
    h: np.ndarray,
    errors: Dict[str, np.ndarray],
    *,
    title: str = "Convergence",
    path: Optional[Path] = None,
    reference_order: float | None = 2.0,
    show: bool = True,
    close: bool = True,
) -> None:
    """Log-log plot of error norms against mesh size, with an optional h^p guide line."""
    h = np.asarray(h, dtype=float)

    fig, ax = plt.subplots()
    for name, e in errors.items():
        ax.loglog(h, np.asarray(e, dtype=float), "o-", label=name)

    if reference_order is not None and h.size:
        e0 = max(float(np.asarray(e, dtype=float)[0]) for e in errors.values()) if errors else 1.0
        ax.loglog(h, e0 * (h / h[0]) ** reference_order, "k--", lw=1, label=f"h^{reference_order:g}")

    ax.set_xlabel("h")
    ax.set_ylabel("error")
    ax.set_title(title)
    ax.legend()
    fig.tight_layout()

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=200)

    if show:
        plt.show()

    if close:
        plt.close(fig)


# -----------------------------
# Field writer
# -----------------------------

class Writer:
    """
    Write numerical / analytical / error fields of a mesh to disk.

    Each write_now() produces <filename>[_<iteration>].vtu (VTK point cloud,
    one vertex cell per point, via meshio) and the same arrays as .npz.
    By default only INTERIOR and BORDER points are written.
    """

    def __init__(self, mesh: Mesh, out_dir: Path | str = "outputs") -> None:
        self.mesh = mesh
        self.out_dir = Path(out_dir)
        self.filename = "solution"
        self.iteration: Optional[int] = None
        self.write_exterior = False
        self._vectors: Dict[str, np.ndarray] = {}

    def set_filename(self, name: str) -> None:
        self.filename = str(name)

    def set_current_iteration(self, iteration: int) -> None:
        self.iteration = int(iteration)

    def set_write_both_domains(self, flag: bool = True) -> None:
        """Also write EXTERIOR points."""
        self.write_exterior = bool(flag)

    def set_vector(self, name: str, v: np.ndarray) -> None:
        self.mesh.check_vector(v, name)
        self._vectors[name] = np.asarray(v, dtype=float)

    def set_vector_numerical(self, v: np.ndarray) -> None:
        self.set_vector("u_num", v)

    def set_vector_analytical(self, v: np.ndarray) -> None:
        self.set_vector("u_ana", v)

    def set_vector_error_abs(self, v: np.ndarray) -> None:
        self.set_vector("err_abs", v)

    def _stem(self) -> str:
        if self.iteration is None:
            return self.filename
        return f"{self.filename}_{self.iteration:05d}"

    def write_now(self) -> List[Path]:
        """Write the registered vectors; returns the paths written."""
        mesh = self.mesh
        mesh.require_built()

        if self.write_exterior:
            keep = np.arange(mesh.n_points)
        else:
            keep = np.flatnonzero(mesh.locations != Location.EXTERIOR)

        points = mesh.coords[keep]
        point_data = {name: v[keep] for name, v in self._vectors.items()}
        point_data["location"] = mesh.locations[keep].astype(np.int32)

        self.out_dir.mkdir(parents=True, exist_ok=True)
        vtu = self.out_dir / f"{self._stem()}.vtu"
        cells = [meshio.CellBlock("vertex", np.arange(keep.size).reshape(-1, 1))]
        meshio.Mesh(points, cells, point_data=point_data).write(vtu)

        npz = self.out_dir / f"{self._stem()}.npz"
        save_npz(npz, coords=points, index=keep, **point_data)

        log.info("Wrote %d points to %s", keep.size, vtu)
        return [vtu, npz]
