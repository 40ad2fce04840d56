"""Scene-level collection of effectors.

An :class:`EffectorRegistry` holds the effectors of one scene in insertion
order and answers point queries against all of them.  Pass it explicitly to
whatever needs the field (see :func:`dcfield.tracking.displace_by_field`).
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from ._math import _PointLike
from .aggregate import query_field
from .effector import DisplacementResult, Effector

logger = logging.getLogger(__name__)


class EffectorRegistry:
    """Ordered set of effectors.

    Membership uses effector equality (same type and id; identity for
    anonymous effectors), so an effector can only be registered once.
    """

    def __init__(self, effectors: Optional[Iterable[Effector]] = None) -> None:
        self._effectors: List[Effector] = []
        for effector in effectors or ():
            self.register(effector)

    def __len__(self) -> int:
        return len(self._effectors)

    def __iter__(self) -> Iterator[Effector]:
        return iter(list(self._effectors))

    def __contains__(self, effector: object) -> bool:
        return any(e == effector for e in self._effectors)

    def __repr__(self) -> str:
        return f"EffectorRegistry({len(self._effectors)} effectors)"

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def register(self, effector: Effector) -> bool:
        """Add *effector* after refreshing it; duplicates are refused."""
        if effector in self:
            logger.debug("Effector %r (id %d) already registered", effector.name, effector.id)
            return False
        effector.update_effector()
        self._effectors.append(effector)
        logger.debug("Registered %s %r (id %d)", type(effector).__name__, effector.name, effector.id)
        return True

    def unregister(self, effector: Union[Effector, int]) -> bool:
        """Remove an effector, given either the object or its id."""
        for i, e in enumerate(self._effectors):
            if isinstance(effector, Effector):
                match = e == effector
            else:
                match = e.id == effector and e.id != -1
            if match:
                del self._effectors[i]
                logger.debug("Unregistered %s %r (id %d)", type(e).__name__, e.name, e.id)
                return True
        return False

    def find_by_name(self, name: str) -> Optional[Effector]:
        """First registered effector called *name*, or ``None``."""
        for e in self._effectors:
            if e.name == name:
                return e
        return None

    def clear(self) -> None:
        self._effectors.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_displacement(
        self,
        point: _PointLike,
        combine_overlaps: bool = False,
        limit_to_max_strength: bool = True,
    ) -> Tuple[bool, DisplacementResult]:
        """Displacement at *point*.

        Without *combine_overlaps* the first registered effector containing
        the point decides; otherwise all containing effectors are blended.
        Returns ``(found, result)``.
        """
        found, result, _ = query_field(point, self._effectors, combine_overlaps, limit_to_max_strength)
        return found, result

    def query_displacement_and_effectors(
        self,
        point: _PointLike,
        combine_overlaps: bool = False,
        limit_to_max_strength: bool = True,
    ) -> Tuple[List[Effector], DisplacementResult]:
        """Like :meth:`query_displacement`, returning the contributing
        effectors instead of a flag (empty when nothing contains *point*)."""
        _, result, hits = query_field(point, self._effectors, combine_overlaps, limit_to_max_strength)
        return hits, result
