"""
Sibling-view propagation after a mutation resolves.

A mutation reconciles the entries in its own scope. Other cached views can
hold the same entity too (another sort order of the same post's comments, a
feed the user navigated away from). Active views are patched in place with the
reconciled values so nothing on screen disagrees; inactive views are only
flagged stale and refetch the next time they are mounted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from threadcache.cache import CacheEntry, CacheStore, QuerySignature

logger = logging.getLogger(__name__)


@dataclass
class PropagationReport:
    patched: list[QuerySignature] = field(default_factory=list)
    staled: list[QuerySignature] = field(default_factory=list)


class InvalidationPropagator:
    def __init__(self, store: CacheStore) -> None:
        self._store = store

    def propagate(
        self,
        family: Iterable[QuerySignature],
        entity_id: int,
        patch: Callable[[Any], None],
        *,
        exclude: Iterable[QuerySignature] = (),
    ) -> PropagationReport:
        """
        Bring every entry in ``family`` that shows ``entity_id`` in line.

        :param family: Partial signatures of every view kind that can hold the entity.
        :param entity_id: Entity whose values were just reconciled.
        :param patch: Applies the reconciled values to one occurrence.
        :param exclude: Partial signatures already handled by the mutation.
        :returns: Which signatures were patched and which were flagged stale.
        """
        excluded = list(exclude)
        report = PropagationReport()
        seen: set[QuerySignature] = set()

        def visit(entry: CacheEntry) -> None:
            signature = entry.signature
            if signature in seen or any(signature.matches(p) for p in excluded):
                return
            seen.add(signature)
            nodes = entry.occurrences(entity_id)
            if not nodes:
                return
            if entry.active:
                for node in nodes:
                    patch(node)
                report.patched.append(signature)
            else:
                entry.stale = True
                report.staled.append(signature)

        for partial in family:
            self._store.for_each_matching(partial, visit)

        if report.patched or report.staled:
            logger.info(
                "Propagated entity %s: patched %s active, staled %s inactive",
                entity_id,
                len(report.patched),
                len(report.staled),
            )
        return report


__all__ = ["InvalidationPropagator", "PropagationReport"]
