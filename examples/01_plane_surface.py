"""
Example 01: Constant and Planar Surfaces

Compares the SSD of a fixed-SSD model with a plane perpendicular to the
central axis along a transverse profile, and checks the plane against
the inverse-cosine law SSD = SSD₀ / cos(γ).
"""

import sys
import pathlib

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import numpy as np
import matplotlib.pyplot as plt

from dose_surfaces import ConstantSurface, GantryPosition, PlaneSurface
from dose_surfaces.utils.visualization import plot_ssd_profile


def main():
    # — Configuration ————————————————————————————————————————————————————————
    gantry  = GantryPosition(gantry_angle=np.radians(30.0), sad=1000.0)
    source  = gantry.position()
    ssd0    = 900.0

    constant = ConstantSurface(ssd0)
    plane    = PlaneSurface(ssd0)

    # Transverse profile through the isocenter, perpendicular to the beam
    lateral = np.linspace(-200.0, 200.0, 81)
    e_x     = gantry.rotation() @ np.array([1.0, 0.0, 0.0])
    points  = lateral[:, np.newaxis] * e_x

    print(f"Source: {np.round(source, 1)} (gantry {np.degrees(gantry.gantry_angle):.0f}°)")
    print(f"Profile: {len(points)} points, {lateral[0]:.0f} … {lateral[-1]:.0f} mm")

    # — Inverse-cosine check ——————————————————————————————————————————————————
    print("\n— Inverse-cosine validation —")
    axis = gantry.central_axis_direction()
    for x in (0.0, 100.0, 200.0):
        point = x * e_x
        d     = (point - source) / np.linalg.norm(point - source)
        cos_g = np.dot(d, axis)
        print(f"x={x:6.1f} mm  SSD={plane.get_ssd(point, source):8.3f}  "
              f"SSD₀/cosγ={ssd0 / cos_g:8.3f}  depth={plane.get_depth(point, source):7.3f}")

    # — Visualization —————————————————————————————————————————————————————————
    fig, ax = plot_ssd_profile(
        {"Constant": constant, "Plane": plane},
        points, source, abscissa=lateral,
        title="Constant vs Planar SSD",
    )

    plt.tight_layout()
    plt.savefig("plane_surface_result.png", dpi=150, bbox_inches="tight")
    plt.show()
    print("\nSaved: plane_surface_result.png")


if __name__ == "__main__":
    main()
