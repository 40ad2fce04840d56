"""Rasterising the displacement field onto a regular grid.

This module provides:

* :func:`field_coordinates` -- cell-centre x and y coordinates of a grid
* :func:`sample_displacement_field` -- per-cell displacement and influence
* :func:`save_field` / :func:`load_field` -- ``.npz`` archives of a sampled
  field together with the bounds it was sampled on
"""

from __future__ import annotations

import os
from typing import Iterable, Tuple

import numpy as np
import numpy.typing as npt

from .aggregate import query_field
from .effector import Effector

_Array = npt.NDArray[np.floating]
_Bounds2D = Tuple[Tuple[float, float], Tuple[float, float]]
_Resolution2D = Tuple[int, int]


def field_coordinates(bounds: _Bounds2D, resolution: _Resolution2D) -> Tuple[_Array, _Array]:
    """``(xs, ys)`` cell-centre coordinates, ``nx`` and ``ny`` long."""
    (x0, x1), (y0, y1) = bounds
    nx, ny = resolution
    xs = x0 + (np.arange(nx) + 0.5) * ((x1 - x0) / nx)
    ys = y0 + (np.arange(ny) + 0.5) * ((y1 - y0) / ny)
    return xs, ys


def sample_displacement_field(
    effectors: Iterable[Effector],
    bounds: _Bounds2D,
    resolution: _Resolution2D,
    combine_overlaps: bool = True,
    limit_to_max_strength: bool = True,
) -> Tuple[_Array, _Array]:
    """Query the field of *effectors* at every cell centre.

    Parameters
    ----------
    effectors:
        Effectors to query, in priority order (first hit wins unless
        *combine_overlaps*).
    bounds:
        ``((x0, x1), (y0, y1))`` physical extents of the domain.
    resolution:
        ``(nx, ny)`` number of cells along each axis.

    Returns
    -------
    displacement:
        Shape ``(ny, nx, 3)`` array of ``(x, y, depth)`` displacements.
    influence:
        Shape ``(ny, nx)`` array of influences (0 outside every effector).
    """
    effectors = list(effectors)
    xs, ys = field_coordinates(bounds, resolution)

    displacement = np.zeros((len(ys), len(xs), 3))
    influence = np.zeros((len(ys), len(xs)))
    for j, y in enumerate(ys):
        for i, x in enumerate(xs):
            found, result, _ = query_field((x, y), effectors, combine_overlaps, limit_to_max_strength)
            if found:
                displacement[j, i] = result.displacement
                influence[j, i] = result.influence
    return displacement, influence


def save_field(path: str, displacement: _Array, influence: _Array, bounds: _Bounds2D) -> None:
    """Write a sampled field to an ``.npz`` archive at *path*.

    Parent directories are created as needed.
    """
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    np.savez(path, displacement=displacement, influence=influence, bounds=np.asarray(bounds, dtype=float))


def load_field(path: str) -> Tuple[_Array, _Array, _Bounds2D]:
    """Read an archive written by :func:`save_field`.

    Returns ``(displacement, influence, bounds)``.
    """
    with np.load(path) as data:
        (x0, x1), (y0, y1) = data["bounds"]
        return data["displacement"], data["influence"], ((float(x0), float(x1)), (float(y0), float(y1)))
