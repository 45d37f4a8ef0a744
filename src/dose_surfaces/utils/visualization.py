"""
Plotting utilities for external surfaces and SSD profiles.

All functions return (Figure, Axes) and accept an optional `ax` argument
for embedding into multi-panel figures.
"""

from __future__ import annotations

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes
from typing import Optional

from dose_surfaces.errors import NoIntersectionError


def plot_radius_grid(
    surface,
    title: str = "Cylindrical Radius Grid",
    figsize: tuple[float, float] = (10, 5),
    cmap: str = "viridis",
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot the radius grid of a CylindricalSurface as a heatmap.

    Parameters
    ----------
    surface : CylindricalSurface
        Surface with `grid`, `phi` and `y` attributes.
    title : str
        Plot title.
    figsize : tuple
        Figure size.
    cmap : str
        Colormap name.
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=figsize)
    else:
        fig = ax.get_figure()

    phi_deg = np.degrees(surface.phi)
    im = ax.imshow(
        surface.grid.T,
        origin="lower",
        aspect="auto",
        cmap=cmap,
        extent=(phi_deg[0], phi_deg[-1], surface.y[0], surface.y[-1]),
    )
    plt.colorbar(im, ax=ax, label="Radius")

    ax.set_xlabel("Azimuth φ (°)")
    ax.set_ylabel("y")
    ax.set_title(title)

    return fig, ax


def plot_contour(
    surface,
    y: float = 0.0,
    sources: Optional[np.ndarray] = None,
    entry_points: Optional[np.ndarray] = None,
    n_points: int = 360,
    title: str = "Surface Contour",
    figsize: tuple[float, float] = (6, 6),
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot a transverse contour of a CylindricalSurface in the x-z plane.

    Parameters
    ----------
    surface : CylindricalSurface
        Surface with a `radius(phi, y)` method.
    y : float
        Longitudinal position of the slice.
    sources : np.ndarray, optional
        Source positions, shape (N, 3).
    entry_points : np.ndarray, optional
        Surface entry points, shape (M, 3).
    n_points : int
        Number of azimuth samples of the contour.
    title : str
        Plot title.
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=figsize)
    else:
        fig = ax.get_figure()

    phi = np.linspace(0.0, 2.0 * np.pi, n_points + 1)
    r   = surface.radius(phi, np.full_like(phi, y))
    ax.plot(r * np.sin(phi), r * np.cos(phi), "b-", linewidth=2, label="Contour")

    if sources is not None:
        sources = np.asarray(sources)
        ax.scatter(sources[:, 0], sources[:, 2],
                   color="red", s=20, zorder=5, label="Sources")

    if entry_points is not None:
        entry_points = np.asarray(entry_points)
        ax.scatter(entry_points[:, 0], entry_points[:, 2],
                   color="orange", s=10, zorder=4, label="Entry pts")

    ax.set_xlabel("x")
    ax.set_ylabel("z")
    ax.set_title(title)
    ax.set_aspect("equal")
    ax.legend(loc="best", fontsize=8)
    ax.grid(True, alpha=0.3)

    return fig, ax


def plot_ssd_profile(
    surfaces: dict,
    points: np.ndarray,
    source: np.ndarray,
    abscissa: Optional[np.ndarray] = None,
    title: str = "SSD Profile",
    figsize: tuple[float, float] = (10, 4),
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot SSD along a line of calculation points for several surfaces.

    Rays that miss a surface are left as gaps in its curve.

    Parameters
    ----------
    surfaces : dict[str, ExternalSurface]
        Surfaces to compare, keyed by legend label.
    points : np.ndarray, shape (N, 3)
        Calculation points.
    source : np.ndarray, shape (3,)
        Source position.
    abscissa : np.ndarray, optional
        x-axis values; defaults to the point index.
    title : str
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=figsize)
    else:
        fig = ax.get_figure()

    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    x = np.arange(len(points)) if abscissa is None else np.asarray(abscissa)

    for label, surface in surfaces.items():
        ssd = np.full(len(points), np.nan)
        for i, p in enumerate(points):
            try:
                ssd[i] = surface.get_ssd(p, source)
            except NoIntersectionError:
                continue
        ax.plot(x, ssd, linewidth=1.5, label=label)

    ax.set_xlabel("Point index" if abscissa is None else "Position")
    ax.set_ylabel("SSD")
    ax.set_title(title)
    ax.legend(loc="best", fontsize=8)
    ax.grid(True, alpha=0.3)

    return fig, ax
