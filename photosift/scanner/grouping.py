"""
Group building module for the scanner package.

Turns matched pairs into duplicate groups. Every group has a representative
(its first member, the photo to keep) and a photo only joins a group when its
dHash is within the relaxed distance of that representative. This prevents
chains of pairwise matches (A~B, B~C, C~D...) from collapsing dissimilar
photos into one group, which is why this is not a union-find.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Mapping, Optional

from ..models import DuplicateGroup, FeatureRecord, SimilarityConfig
from .hashing import hamming_distance

logger = logging.getLogger(__name__)


class GroupBuilder:
    """
    Incremental representative-gated grouping.

    Holds photo -> group id and group id -> ordered members. members[0] of
    each group is its representative.
    """

    def __init__(self, dhashes: Mapping[str, int], max_distance: int):
        """
        Args:
            dhashes: Known dHash per photo identifier
            max_distance: Relaxed dHash distance to a representative
        """
        self.dhashes = dhashes
        self.max_distance = max_distance
        self.group_of: dict[str, str] = {}
        self.members: dict[str, list[str]] = {}
        self._order: list[str] = []

    def _close_to(self, photo: str, representative: str) -> bool:
        photo_hash = self.dhashes.get(photo)
        rep_hash = self.dhashes.get(representative)
        if photo_hash is None or rep_hash is None:
            return False
        return hamming_distance(photo_hash, rep_hash) <= self.max_distance

    def add_pair(self, a: str, b: str) -> None:
        """Apply one matched pair."""
        if a not in self.dhashes or b not in self.dhashes:
            return
        group_a = self.group_of.get(a)
        group_b = self.group_of.get(b)

        if group_a is None and group_b is None:
            group_id = uuid.uuid4().hex
            self.members[group_id] = [a, b]
            self.group_of[a] = group_id
            self.group_of[b] = group_id
            self._order.append(group_id)
        elif group_b is None:
            self._join(b, group_a)
        elif group_a is None:
            self._join(a, group_b)
        elif group_a != group_b:
            self._merge(group_a, group_b)

    def _join(self, photo: str, group_id: str) -> None:
        if self._close_to(photo, self.members[group_id][0]):
            self.members[group_id].append(photo)
            self.group_of[photo] = group_id

    def _merge(self, keep_id: str, other_id: str) -> None:
        keep = self.members[keep_id]
        other = self.members[other_id]
        if not self._close_to(other[0], keep[0]):
            return
        for photo in other:
            self.group_of[photo] = keep_id
        keep.extend(other)
        del self.members[other_id]
        self._order.remove(other_id)

    def groups(self, created_at: Optional[float] = None) -> list[DuplicateGroup]:
        """Groups with at least 2 members, in creation order."""
        created_at = time.time() if created_at is None else created_at
        return [
            DuplicateGroup(group_id=group_id, members=list(self.members[group_id]), created_at=created_at)
            for group_id in self._order
            if len(self.members[group_id]) >= 2
        ]


def order_pairs(pairs: Iterable[tuple[str, str]], records: Mapping[str, FeatureRecord]) -> list[tuple[str, str]]:
    """
    Orient each pair earlier-photo-first and sort chronologically.

    Ties on capture time are broken by identifier, so the result (and with it
    every group's representative) doesn't depend on set iteration order.
    """
    def key(identifier: str):
        record = records.get(identifier)
        return (record.captured_at if record is not None else float('inf'), identifier)

    oriented = []
    for a, b in pairs:
        if key(b) < key(a):
            a, b = b, a
        oriented.append((a, b))
    oriented.sort(key=lambda pair: (key(pair[0]), key(pair[1])))
    return oriented


def build_groups(
    pairs: Iterable[tuple[str, str]],
    records: Iterable[FeatureRecord],
    cfg: SimilarityConfig,
) -> list[DuplicateGroup]:
    """
    Build representative-gated duplicate groups from matched pairs.

    Args:
        pairs: Matched (id, id) pairs
        records: Feature records of the scanned photos
        cfg: Similarity thresholds (dhash_threshold + group_merge_slack is
            the relaxed join distance)

    Returns:
        List of DuplicateGroup objects, each with >= 2 members
    """
    by_id = {r.identifier: r for r in records}
    builder = GroupBuilder(
        dhashes={identifier: r.dhash for identifier, r in by_id.items()},
        max_distance=cfg.dhash_threshold + cfg.group_merge_slack,
    )
    for a, b in order_pairs(pairs, by_id):
        builder.add_pair(a, b)

    groups = builder.groups()
    logger.debug(f"Built {len(groups):,} groups from {len(builder.group_of):,} grouped photos")
    return groups


__all__ = ['GroupBuilder', 'order_pairs', 'build_groups']
