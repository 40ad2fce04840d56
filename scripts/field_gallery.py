"""Render every dcfield effector as an influence heatmap with displacement quivers.

Usage::

    python scripts/field_gallery.py                      # saves field_gallery.png
    python scripts/field_gallery.py --out my_file.png    # custom output path
    python scripts/field_gallery.py --scene scene.yaml   # one panel per scene effector

Requirements: numpy, PyYAML, matplotlib
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

# Ensure the repo root (parent of scripts/) is importable regardless of cwd
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib.pyplot as plt
import numpy as np

from dcfield import field_coordinates, load_scene, sample_displacement_field

logger = logging.getLogger("field_gallery")

# ---------------------------------------------------------------------------
# Effector catalogue: (label, effector)
# ---------------------------------------------------------------------------

def _make_effectors() -> list[tuple[str, object]]:
    from dcfield import (
        BoxEffector, ChainEffector, CircleEffector, InterpSemiTorusEffector,
        PathNodeData, SemiCircleEffector, SemiTorusEffector, TorusEffector,
    )

    repel = CircleEffector((0, 0), (6, 0), strength=2.0, feather_amount=0.5)
    repel.repel = True

    chain = ChainEffector([
        PathNodeData((-6, -3), strength=1.5, desired_distance_outwards=2, desired_distance_pivot=3),
        PathNodeData((-1, 3), strength=1.5, desired_distance_outwards=2, desired_distance_pivot=3),
        PathNodeData((3, -2), strength=1.5, desired_distance_outwards=2, desired_distance_pivot=3),
        PathNodeData((7, 2), strength=1.5, desired_distance_outwards=2, desired_distance_pivot=3),
    ], use_start_and_end_caps=True)

    effectors = [
        ("Circle (attract)",   CircleEffector((0, 0), (6, 0), strength=2.0, feather_amount=0.5)),
        ("Circle (repel)",     repel),
        ("SemiCircle",         SemiCircleEffector((0, -2), (6, -2), (-3, 3), strength=2.0)),
        ("Torus",              TorusEffector((0, 0), (5, 0), distance_outward=2, strength=1.0)),
        ("SemiTorus + caps",   SemiTorusEffector((0, -2), (5, -2), (-3, 2), 2, 1.0,
                                                 use_start_and_end_caps=True)),
        ("InterpSemiTorus",    InterpSemiTorusEffector((0, -2), (5, -2), (-3, 2),
                                                       distance_outward1=1, distance_outward2=3,
                                                       strength1=0.5, strength2=2.0, strength_center=1.0)),
        ("Box",                BoxEffector((-6, 0), (6, 0), 2, 4, strength1=1.0, strength2=2.0)),
        ("Chain",              chain),
    ]
    return effectors


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_BOUNDS = ((-8.0, 8.0), (-8.0, 8.0))
_RES    = (160, 160)
_EXTENT = [-8, 8, -8, 8]
_QUIVER_STEP = 8


def render_gallery(effectors: list[tuple[str, object]], out_path: str, ncols: int = 4) -> None:
    nrows = (len(effectors) + ncols - 1) // ncols
    fig, axes = plt.subplots(
        nrows, ncols,
        figsize=(ncols * 3.2, nrows * 3.2),
        facecolor="#111111",
    )
    axes = np.asarray(axes).ravel()

    X, Y = np.meshgrid(*field_coordinates(_BOUNDS, _RES))

    for ax, (label, effector) in zip(axes, effectors):
        logger.debug("Sampling %s", label)
        disp, influence = sample_displacement_field([effector], _BOUNDS, _RES)
        ax.set_facecolor("#111111")
        ax.set_xticks([])
        ax.set_yticks([])
        ax.set_title(label, color="white", fontsize=7, pad=3)
        for spine in ax.spines.values():
            spine.set_edgecolor("#444444")

        ax.imshow(influence, origin="lower", extent=_EXTENT,
                  cmap="magma", vmin=0.0, vmax=1.0, interpolation="bilinear")
        s = slice(None, None, _QUIVER_STEP)
        ax.quiver(X[s, s], Y[s, s], disp[s, s, 0], disp[s, s, 1],
                  color="white", angles="xy", scale_units="xy", scale=1.0, width=0.006)

    # Hide unused axes
    for ax in axes[len(effectors):]:
        ax.set_visible(False)

    fig.suptitle("dcfield: Displacement Field Gallery", color="white",
                 fontsize=13, y=1.002)
    plt.tight_layout(pad=0.4)
    fig.savefig(out_path, dpi=200, bbox_inches="tight", facecolor=fig.get_facecolor())
    plt.close(fig)
    logger.info("Saved: %s", out_path)


def main() -> None:
    parser = argparse.ArgumentParser(description="Render dcfield effectors to a single PNG gallery.")
    parser.add_argument("--out", default="field_gallery.png", help="Output PNG path")
    parser.add_argument("--cols", type=int, default=4, help="Number of columns (default 4)")
    parser.add_argument("--scene", default=None, help="Render the effectors of a scene YAML file instead")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.scene:
        scene = load_scene(args.scene)
        effectors = [(e.name, e) for e in scene.effectors]
    else:
        effectors = _make_effectors()
    render_gallery(effectors, args.out, ncols=args.cols)


if __name__ == "__main__":
    main()
