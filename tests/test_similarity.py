"""
Unit tests for the staged similarity classifier.
"""

import pytest

from photosift.models import SimilarityConfig
from photosift.scanner.similarity import (
    STAGE_ASPECT_RATIO,
    STAGE_DHASH,
    STAGE_DHASH_CERTAIN,
    STAGE_ENTRY_GATE,
    STAGE_ERROR,
    STAGE_FILE_SIZE,
    STAGE_PHASH,
    TemporalTier,
    Verdict,
    classify,
    is_similar,
    safe_classify,
    temporal_boost,
    temporal_tier,
)

from conftest import make_record

CFG = SimilarityConfig()

# Single-bin histogram and two partial overlaps with it
HIST_A = (1024,) + (0,) * 511
HIST_HALF = (512, 512) + (0,) * 510
HIST_030 = (307, 717) + (0,) * 510


def bits(n):
    """Hash with the lowest n bits set."""
    return (1 << n) - 1


class TestTemporalTier:
    """Test capture-gap tiers."""

    @pytest.mark.parametrize("seconds,tier", [
        (0, TemporalTier.RAPID),
        (30, TemporalTier.RAPID),
        (31, TemporalTier.BURST),
        (60, TemporalTier.BURST),
        (120, TemporalTier.CLOSE),
        (121, TemporalTier.NONE),
    ])
    def test_boundaries(self, seconds, tier):
        assert temporal_tier(seconds, CFG) is tier


class TestTemporalBoost:
    """Test color-scaled temporal boosts."""

    def test_full_boost_for_very_similar_colors(self):
        assert temporal_boost(TemporalTier.RAPID, 0.80, CFG) == 20

    def test_half_boost_for_similar_colors(self):
        assert temporal_boost(TemporalTier.RAPID, 0.70, CFG) == 10
        assert temporal_boost(TemporalTier.BURST, 0.70, CFG) == 7
        assert temporal_boost(TemporalTier.CLOSE, 0.66, CFG) == 4

    def test_no_boost(self):
        assert temporal_boost(TemporalTier.RAPID, 0.60, CFG) == 0
        assert temporal_boost(TemporalTier.NONE, 0.95, CFG) == 0


class TestClassify:
    """Test every stage of the classifier."""

    def test_identical_photos_match_via_certain_dhash(self):
        a = make_record('a', captured_at=100.0)
        b = make_record('b', captured_at=102.0)
        result = classify(a, b, CFG)
        assert result.verdict is Verdict.MATCH
        assert result.stage == STAGE_DHASH_CERTAIN
        assert result.tier is TemporalTier.RAPID
        assert result.dhash_distance == 0

    def test_entry_gate_rejects_unrelated_photos(self):
        a = make_record('a', captured_at=0.0, histogram=HIST_A)
        b = make_record('b', captured_at=1000.0, histogram=HIST_030, edge_hash=bits(20))
        result = classify(a, b, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_ENTRY_GATE
        assert result.color_similarity == pytest.approx(0.30, abs=0.001)
        assert result.edge_distance == 20

    def test_rapid_tier_relaxes_entry_gate(self):
        a = make_record('a', captured_at=0.0, histogram=HIST_A)
        far = make_record('b', captured_at=1000.0, histogram=HIST_030, edge_hash=bits(10))
        near = make_record('b', captured_at=10.0, histogram=HIST_030, edge_hash=bits(10))
        assert classify(a, far, CFG).stage == STAGE_ENTRY_GATE
        assert classify(a, near, CFG).is_match

    def test_aspect_ratio_prefilter(self):
        a = make_record('a', width=3000, height=1000)
        b = make_record('b', width=1000, height=2000)
        result = classify(a, b, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_ASPECT_RATIO

    def test_rotation_keeps_aspect_ratio(self):
        a = make_record('a', width=4000, height=3000)
        b = make_record('b', width=3000, height=4000)
        assert classify(a, b, CFG).is_match

    def test_unknown_dimensions_pass_aspect_prefilter(self):
        a = make_record('a', width=0, height=0)
        b = make_record('b', width=1000, height=3000)
        assert classify(a, b, CFG).is_match

    def test_file_size_prefilter(self):
        a = make_record('a', file_size=1_000_000)
        b = make_record('b', file_size=3_000_000)
        result = classify(a, b, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_FILE_SIZE

    def test_dhash_reject(self):
        a = make_record('a', captured_at=0.0)
        b = make_record('b', captured_at=1000.0, dhash=bits(20))
        result = classify(a, b, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_DHASH
        assert result.dhash_distance == 20

    def test_phash_confirmation_with_boost(self):
        # High-confidence boost: dhash window 11..18, phash threshold 16
        a = make_record('a', captured_at=0.0)
        match = make_record('b', captured_at=1000.0, dhash=bits(15), phash=bits(16))
        reject = make_record('b', captured_at=1000.0, dhash=bits(15), phash=bits(17))

        result = classify(a, match, CFG)
        assert result.verdict is Verdict.MATCH
        assert result.stage == STAGE_PHASH
        assert result.phash_threshold == 16

        result = classify(a, reject, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_PHASH

    def test_strict_phash_when_only_edges_agree(self):
        a = make_record('a', captured_at=0.0, histogram=HIST_A)
        match = make_record('b', captured_at=1000.0, histogram=HIST_HALF, dhash=bits(8), phash=bits(6))
        reject = make_record('b', captured_at=1000.0, histogram=HIST_HALF, dhash=bits(8), phash=bits(7))

        result = classify(a, match, CFG)
        assert result.is_match
        assert result.phash_threshold == CFG.phash_threshold_strict

        assert not classify(a, reject, CFG).is_match

    def test_order_independent(self):
        records = [
            make_record('a', captured_at=0.0),
            make_record('b', captured_at=5.0, dhash=bits(15), phash=bits(12), histogram=HIST_HALF),
            make_record('c', captured_at=90.0, edge_hash=bits(9), histogram=HIST_030),
            make_record('d', captured_at=500.0, width=1000, height=3000),
        ]
        for a in records:
            for b in records:
                assert classify(a, b, CFG) == classify(b, a, CFG)

    def test_config_overrides_apply(self):
        a = make_record('a', captured_at=0.0)
        b = make_record('b', captured_at=1000.0, dhash=bits(20))
        assert not classify(a, b, CFG).is_match
        assert classify(a, b, CFG.replace(dhash_certain=14)).is_match


class TestSafeClassify:
    """Test error isolation per pair."""

    def test_error_becomes_reject(self):
        a = make_record('a')
        broken = make_record('b')
        broken.captured_at = None
        result = safe_classify(a, broken, CFG)
        assert result.verdict is Verdict.REJECT
        assert result.stage == STAGE_ERROR

    def test_is_similar(self):
        assert is_similar(make_record('a'), make_record('b'), CFG) is True
        assert is_similar(make_record('a'), make_record('b', dhash=bits(40)), CFG) is False
