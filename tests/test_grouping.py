"""
Unit tests for representative-gated group building.
"""

from photosift.models import SimilarityConfig
from photosift.scanner.grouping import GroupBuilder, build_groups, order_pairs

from conftest import make_record

CFG = SimilarityConfig()  # relaxed join distance 12 + 10 = 22


def bits(n):
    return (1 << n) - 1


def members(groups):
    return [group.members for group in groups]


class TestBuildGroups:
    """Test grouping of matched pairs."""

    def test_single_pair(self):
        records = [make_record('a', captured_at=0.0), make_record('b', captured_at=1.0)]
        groups = build_groups({('a', 'b')}, records, CFG)
        assert members(groups) == [['a', 'b']]

    def test_representative_is_earliest_photo(self):
        records = [make_record('a', captured_at=50.0), make_record('z', captured_at=10.0)]
        groups = build_groups({('a', 'z')}, records, CFG)
        assert groups[0].representative == 'z'
        assert groups[0].duplicates == ['a']

    def test_chain_is_cut_at_representative_distance(self):
        records = [
            make_record('a', captured_at=0.0, dhash=0),
            make_record('b', captured_at=1.0, dhash=bits(15)),
            make_record('c', captured_at=2.0, dhash=bits(30)),
        ]
        groups = build_groups({('a', 'b'), ('b', 'c')}, records, CFG)
        assert members(groups) == [['a', 'b']]

    def test_chain_within_distance_joins(self):
        records = [
            make_record('a', captured_at=0.0, dhash=0),
            make_record('b', captured_at=1.0, dhash=bits(15)),
            make_record('c', captured_at=2.0, dhash=bits(20)),
        ]
        groups = build_groups({('a', 'b'), ('b', 'c')}, records, CFG)
        assert members(groups) == [['a', 'b', 'c']]

    def test_groups_merge_when_representatives_are_close(self):
        records = [make_record(name, captured_at=float(i)) for i, name in enumerate('abcd')]
        groups = build_groups({('a', 'c'), ('b', 'd'), ('c', 'd')}, records, CFG)
        assert members(groups) == [['a', 'c', 'b', 'd']]

    def test_groups_stay_apart_when_representatives_differ(self):
        records = [
            make_record('a', captured_at=0.0, dhash=0),
            make_record('b', captured_at=1.0, dhash=bits(30)),
            make_record('c', captured_at=2.0, dhash=0),
            make_record('d', captured_at=3.0, dhash=bits(30)),
        ]
        groups = build_groups({('a', 'c'), ('b', 'd'), ('c', 'd')}, records, CFG)
        assert members(groups) == [['a', 'c'], ['b', 'd']]

    def test_every_member_is_close_to_its_representative(self):
        records = [make_record(f"p{i}", captured_at=float(i), dhash=bits(i * 4)) for i in range(10)]
        pairs = {(f"p{i}", f"p{i + 1}") for i in range(9)}
        by_id = {r.identifier: r for r in records}
        limit = CFG.dhash_threshold + CFG.group_merge_slack
        for group in build_groups(pairs, records, CFG):
            rep = by_id[group.representative].dhash
            for member in group.members:
                assert bin(by_id[member].dhash ^ rep).count("1") <= limit

    def test_unknown_photos_are_ignored(self):
        records = [make_record('a'), make_record('b')]
        assert build_groups({('a', 'missing')}, records, CFG) == []

    def test_deterministic(self):
        records = [make_record(f"p{i}", captured_at=float(i % 4)) for i in range(8)]
        pairs = [(f"p{i}", f"p{j}") for i in range(8) for j in range(i + 1, 8) if (i + j) % 3]
        first = members(build_groups(set(pairs), records, CFG))
        second = members(build_groups(set(reversed(pairs)), records, CFG))
        assert first == second


class TestGroupBuilder:
    """Test the incremental builder directly."""

    def test_groups_need_two_members(self):
        builder = GroupBuilder({'a': 0, 'b': 0}, max_distance=22)
        assert builder.groups() == []
        builder.add_pair('a', 'b')
        groups = builder.groups(created_at=123.0)
        assert len(groups) == 1
        assert groups[0].created_at == 123.0
        assert len(groups[0].group_id) == 32

    def test_same_group_pair_is_noop(self):
        builder = GroupBuilder({'a': 0, 'b': 0, 'c': 0}, max_distance=22)
        builder.add_pair('a', 'b')
        builder.add_pair('b', 'c')
        builder.add_pair('a', 'c')
        assert members(builder.groups()) == [['a', 'b', 'c']]


class TestOrderPairs:
    """Test chronological pair orientation."""

    def test_orients_and_sorts(self):
        records = {
            'x': make_record('x', captured_at=30.0),
            'y': make_record('y', captured_at=10.0),
            'z': make_record('z', captured_at=20.0),
        }
        assert order_pairs([('x', 'z'), ('x', 'y')], records) == [('y', 'x'), ('z', 'x')]
