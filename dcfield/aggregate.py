"""Blending of overlapping effector outputs.

This module provides:

* :func:`combine_displacements` -- influence-weighted average of results
* :func:`weighted_average_displacement` -- the same, evaluated for a point
  against the effectors that contain it
* :func:`query_field` -- bounding-box / containment filtering followed by
  either blending or first-hit lookup

The weighted average is not a force sum: with ``limit_to_max_strength`` the
blended vector never exceeds the longest individual displacement, so
overlapping shapes cannot push a point further than any one of them would.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ._math import _PointLike, as_point
from .effector import DisplacementResult, Effector


def combine_displacements(
    results: Sequence[DisplacementResult],
    limit_to_max_strength: bool = True,
) -> DisplacementResult:
    """Blend *results* into one.

    ``displacement = sum(d_i * f_i) / sum(f_i)`` (zero when the influences
    sum to zero), ``influence = max(f_i)`` and ``locked_xy`` only when every
    contributor is locked.  An empty sequence gives the zero result.
    """
    if not results:
        return DisplacementResult.zero()

    disp = np.stack([r.displacement for r in results])
    f = np.array([r.influence for r in results], dtype=float)

    total_f = float(f.sum())
    if total_f != 0:
        combined = (disp * f[:, None]).sum(axis=0) / total_f
    else:
        combined = np.zeros(3)

    if limit_to_max_strength:
        max_len = float(np.linalg.norm(disp, axis=1).max())
        combined_len = float(np.linalg.norm(combined))
        if combined_len > max_len:
            combined = combined / combined_len * max_len

    return DisplacementResult(
        influence=float(f.max()),
        locked_xy=all(r.locked_xy for r in results),
        displacement=combined,
    )


def weighted_average_displacement(
    point: _PointLike,
    effectors: Iterable[Effector],
    limit_to_max_strength: bool = True,
) -> DisplacementResult:
    """Blend the displacements of the *effectors* that contain *point*."""
    p = as_point(point)
    results = []
    for effector in effectors:
        inside, result = effector.get_displacement_at(p)
        if inside:
            results.append(result)
    return combine_displacements(results, limit_to_max_strength)


def query_field(
    point: _PointLike,
    candidates: Iterable[Effector],
    combine_overlaps: bool = False,
    limit_to_max_strength: bool = True,
) -> Tuple[bool, DisplacementResult, List[Effector]]:
    """Evaluate the field at *point*.

    Candidates are filtered by bounding box and then by exact containment.
    With *combine_overlaps* every hit is blended; otherwise the first hit in
    candidate order wins.

    Returns
    -------
    found:
        Whether any candidate contains the point.
    result:
        The (blended) displacement; zero when nothing was found.
    hits:
        The effectors that contributed, in candidate order.
    """
    p = as_point(point)
    hits: List[Effector] = []
    results: List[DisplacementResult] = []

    for effector in candidates:
        if not effector.is_inside_bounding_box(p):
            continue
        inside, result = effector.get_displacement_at(p)
        if not inside:
            continue
        if not combine_overlaps:
            return True, result, [effector]
        hits.append(effector)
        results.append(result)

    if not hits:
        return False, DisplacementResult.zero(), []
    return True, combine_displacements(results, limit_to_max_strength), hits
