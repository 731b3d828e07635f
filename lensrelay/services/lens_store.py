"""In-memory lens store with an owner index and the short-link table.

The store is a plain container: no clocks, no persistence, no validation.
Those belong to the registry, which snapshots the store after each mutation.
"""

from __future__ import annotations

from typing import Dict, Iterator, List

from lensrelay.schemas.lens import Lens, RegistrySnapshot


class LensStore:
    """Primary index ``code -> Lens`` plus ``owner -> codes`` and ``short -> long``."""

    def __init__(self) -> None:
        self._lenses: Dict[str, Lens] = {}
        # dict keys used as an insertion-ordered set of codes
        self._by_owner: Dict[int, Dict[str, None]] = {}
        self._short_links: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._lenses)

    def __contains__(self, code: object) -> bool:
        return code in self._lenses

    def __iter__(self) -> Iterator[Lens]:
        # copy so callers may delete while iterating
        return iter(list(self._lenses.values()))

    def get(self, code: str) -> Lens | None:
        return self._lenses.get(code)

    def set(self, lens: Lens) -> None:
        previous = self._lenses.get(lens.code)
        if previous is not None and previous.owner_id != lens.owner_id:
            self._unindex_owner(previous)
        self._lenses[lens.code] = lens
        self._by_owner.setdefault(lens.owner_id, {})[lens.code] = None

    def delete(self, code: str) -> Lens | None:
        lens = self._lenses.pop(code, None)
        if lens is not None:
            self._unindex_owner(lens)
        return lens

    def owned_by(self, owner_id: int) -> List[Lens]:
        codes = self._by_owner.get(owner_id, {})
        return [self._lenses[code] for code in codes if code in self._lenses]

    def _unindex_owner(self, lens: Lens) -> None:
        codes = self._by_owner.get(lens.owner_id)
        if codes is None:
            return
        codes.pop(lens.code, None)
        if not codes:
            del self._by_owner[lens.owner_id]

    # Short links

    def get_short(self, short_code: str) -> str | None:
        return self._short_links.get(short_code)

    def has_short(self, short_code: str) -> bool:
        return short_code in self._short_links

    def set_short(self, short_code: str, long_url: str) -> None:
        self._short_links[short_code] = long_url

    def find_short(self, long_url: str) -> str | None:
        """Reverse lookup by linear scan; cardinality is small."""
        for short_code, target in self._short_links.items():
            if target == long_url:
                return short_code
        return None

    # Snapshots

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            lenses=[lens.model_copy() for lens in self._lenses.values()],
            short_links=dict(self._short_links),
        )

    def replace(self, snapshot: RegistrySnapshot) -> None:
        """Drop current contents and load ``snapshot`` wholesale."""
        self._lenses.clear()
        self._by_owner.clear()
        self._short_links.clear()
        for lens in snapshot.lenses:
            self.set(lens)
        self._short_links.update(snapshot.short_links)
