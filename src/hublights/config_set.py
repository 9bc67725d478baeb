"""Ordered, id-addressable collection of monitored targets."""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, Iterator, List, Optional

from .models import TargetConfiguration


class ConfigurationSet:
    """User-ordered sequence of ``TargetConfiguration`` records.

    Records handed out by :meth:`get` and iteration are copies; edits must go
    back through :meth:`update` so the set stays the single owner of its data.
    """

    def __init__(self, targets: Optional[Iterable[TargetConfiguration]] = None) -> None:
        self._targets: List[TargetConfiguration] = []
        self._index: Dict[str, int] = {}
        for target in targets or ():
            self.add(target)

    def _reindex(self) -> None:
        self._index = {target.id: offset for offset, target in enumerate(self._targets)}

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[TargetConfiguration]:
        return iter(self.targets())

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigurationSet):
            return NotImplemented
        return self._targets == other._targets

    def __repr__(self) -> str:
        return f"ConfigurationSet({self._targets!r})"

    def targets(self) -> List[TargetConfiguration]:
        """Return copies of all targets in display order."""
        return [dataclasses.replace(target) for target in self._targets]

    def ids(self) -> List[str]:
        return [target.id for target in self._targets]

    def index_of(self, target_id: str) -> Optional[int]:
        return self._index.get(target_id)

    def get(self, target_id: str) -> TargetConfiguration:
        """Return the target with ``target_id``, or a fresh default target when absent."""
        offset = self._index.get(target_id)
        if offset is None:
            return TargetConfiguration()
        return dataclasses.replace(self._targets[offset])

    def add(self, target: TargetConfiguration) -> None:
        """Append ``target`` to the end of the set.

        Raises:
            ValueError: If a target with the same id is already present.
        """
        if target.id in self._index:
            raise ValueError(f"Duplicate target id '{target.id}'")
        self._targets.append(dataclasses.replace(target))
        self._index[target.id] = len(self._targets) - 1

    def update(self, target_id: str, target: TargetConfiguration) -> bool:
        """Replace the record stored at ``target_id``.

        Unknown ids are ignored; this never inserts. Returns whether a record
        was replaced.

        Raises:
            ValueError: If ``target_id`` is known but ``target.id`` differs from it,
                since ids are immutable.
        """
        offset = self._index.get(target_id)
        if offset is None:
            return False
        if target.id != target_id:
            raise ValueError(f"Target id '{target.id}' does not match '{target_id}'")
        self._targets[offset] = dataclasses.replace(target)
        return True

    def remove(self, target_ids: Iterable[str]) -> List[str]:
        """Remove every target whose id is in ``target_ids``; survivors keep their order."""
        doomed = set(target_ids)
        removed = [target.id for target in self._targets if target.id in doomed]
        if removed:
            self._targets = [target for target in self._targets if target.id not in doomed]
            self._reindex()
        return removed

    def move(self, offsets: Iterable[int], destination: int) -> None:
        """Move the targets at ``offsets`` so they land before ``destination``.

        ``destination`` is an index into the sequence as it was before the
        move, clamped to ``[0, len]``. Offsets outside the current range are
        skipped.
        """
        count = len(self._targets)
        valid = sorted({offset for offset in offsets if 0 <= offset < count})
        if not valid:
            return

        destination = min(max(destination, 0), count)
        moving = [self._targets[offset] for offset in valid]
        staying = [target for offset, target in enumerate(self._targets) if offset not in valid]
        insert_at = destination - sum(1 for offset in valid if offset < destination)
        self._targets = staying[:insert_at] + moving + staying[insert_at:]
        self._reindex()
