"""Deduplicating, order-preserving coordinate store."""

from typing import Dict, Iterator, List, Tuple

from .pom_models import ArtifactCoordinate


class CoordinateCollector:
    """Accumulates coordinates in first-seen order.

    Two coordinates are the same entry when their ``key`` (group, artifact,
    version, packaging, classifier) matches. Re-adding an existing key is a
    no-op, so the first source type recorded for a coordinate is the one
    reported.
    """

    def __init__(self):
        self._items: Dict[tuple, ArtifactCoordinate] = {}

    def add(self, coord: ArtifactCoordinate) -> bool:
        """Store ``coord`` unless an equal coordinate is already present.

        Returns:
            ``True`` if the coordinate was new.
        """
        if coord.key in self._items:
            return False
        self._items[coord.key] = coord
        return True

    def to_list(self) -> List[ArtifactCoordinate]:
        return list(self._items.values())

    def observed_artifacts(self) -> List[Tuple[str, str]]:
        """Distinct ``(group_id, artifact_id)`` pairs, in first-seen order."""
        seen = {}
        for coord in self._items.values():
            seen.setdefault(coord.ga, None)
        return list(seen)

    def __contains__(self, coord: ArtifactCoordinate) -> bool:
        return coord.key in self._items

    def __iter__(self) -> Iterator[ArtifactCoordinate]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)
