"""
Unit tests for perceptual hashing, histograms and the storage codecs.
"""

import numpy as np
import pytest
from PIL import Image

from photosift.scanner.hashing import (
    compute_all_hashes,
    compute_color_histogram,
    compute_dhash,
    compute_edge_hash,
    compute_phash,
    decode_histogram,
    encode_histogram,
    hamming_distance,
    hash_to_hex,
    hex_to_hash,
    histogram_intersection,
    to_rgb_array,
)

from conftest import random_rgb, solid_rgb


def gray_rows(row_values, rows=8):
    """9x8 gray view whose every row is row_values."""
    row = np.array(row_values, dtype=np.uint8)
    return np.stack([np.tile(row, (rows, 1))] * 3, axis=-1)


class TestDHash:
    """Test the difference hash."""

    def test_decreasing_gradient_sets_all_bits(self):
        view = gray_rows([250 - 20 * x for x in range(9)])
        assert compute_dhash(view) == 0xFFFFFFFFFFFFFFFF

    def test_increasing_gradient_sets_no_bits(self):
        view = gray_rows([10 + 20 * x for x in range(9)])
        assert compute_dhash(view) == 0

    def test_first_comparison_is_lowest_bit(self):
        view = gray_rows([100] * 9)
        view[0, 0] = 200
        assert compute_dhash(view) == 1

    def test_second_row_starts_at_bit_eight(self):
        view = gray_rows([100] * 9)
        view[1, 0] = 200
        assert compute_dhash(view) == 1 << 8

    def test_rejects_wrong_view_size(self):
        with pytest.raises(ValueError):
            compute_dhash(random_rgb(1, 32, 32))

    def test_accepts_pil_image(self):
        pixels = random_rgb(1, 9, 8)
        assert compute_dhash(Image.fromarray(pixels)) == compute_dhash(pixels)


class TestPHash:
    """Test the DCT perceptual hash."""

    def test_deterministic(self):
        view = random_rgb(11, 32, 32)
        assert compute_phash(view) == compute_phash(view.copy())

    def test_uses_63_coefficients(self):
        value = compute_phash(random_rgb(11, 32, 32))
        assert value >> 63 == 0
        # Strictly above the median of 63 distinct values
        assert bin(value).count("1") == 31

    def test_different_photos_differ(self):
        a = compute_phash(random_rgb(1, 32, 32))
        b = compute_phash(random_rgb(2, 32, 32))
        assert hamming_distance(a, b) > 10


class TestEdgeHash:
    """Test the Sobel edge hash."""

    def test_flat_image_has_no_edges(self):
        assert compute_edge_hash(solid_rgb((90, 120, 30), 32, 32)) == 0

    def test_textured_image_sets_half_the_cells(self):
        value = compute_edge_hash(random_rgb(5, 32, 32))
        assert bin(value).count("1") == 31

    def test_deterministic(self):
        view = random_rgb(5, 32, 32)
        assert compute_edge_hash(view) == compute_edge_hash(view.copy())


class TestColorHistogram:
    """Test the 512-bin color histogram."""

    def test_counts_every_pixel(self):
        histogram = compute_color_histogram(random_rgb(3, 32, 32))
        assert len(histogram) == 512
        assert sum(histogram) == 32 * 32

    def test_bin_layout(self):
        histogram = compute_color_histogram(solid_rgb((255, 0, 0), 32, 32))
        assert histogram[7 * 64] == 1024

        histogram = compute_color_histogram(solid_rgb((0, 40, 255), 32, 32))
        assert histogram[1 * 8 + 7] == 1024


class TestComputeAllHashes:
    """Test the combined feature bundle."""

    def test_bundle_matches_individual_functions(self):
        small = random_rgb(1, 9, 8)
        medium = random_rgb(2, 32, 32)
        bundle = compute_all_hashes(small, medium)
        assert bundle.dhash == compute_dhash(small)
        assert bundle.phash == compute_phash(medium)
        assert bundle.edge_hash == compute_edge_hash(medium)
        assert bundle.color_histogram == compute_color_histogram(medium)

    def test_grayscale_arrays_are_accepted(self):
        gray = np.full((32, 32), 77, dtype=np.uint8)
        assert to_rgb_array(gray).shape == (32, 32, 3)


class TestHammingDistance:
    """Test Hamming distance properties."""

    def test_reflexive(self):
        assert hamming_distance(0x1234ABCD, 0x1234ABCD) == 0

    def test_symmetric(self):
        assert hamming_distance(0b1011, 0b0001) == hamming_distance(0b0001, 0b1011) == 2

    def test_range(self):
        assert hamming_distance(0, 0xFFFFFFFFFFFFFFFF) == 64


class TestHistogramIntersection:
    """Test color histogram similarity."""

    def test_identical(self):
        histogram = compute_color_histogram(random_rgb(4, 32, 32))
        assert histogram_intersection(histogram, histogram) == pytest.approx(1.0)

    def test_disjoint(self):
        red = compute_color_histogram(solid_rgb((255, 0, 0), 32, 32))
        blue = compute_color_histogram(solid_rgb((0, 0, 255), 32, 32))
        assert histogram_intersection(red, blue) == 0.0

    def test_partial_overlap(self):
        a = (1024,) + (0,) * 511
        b = (256, 768) + (0,) * 510
        assert histogram_intersection(a, b) == pytest.approx(0.25)

    def test_invalid_input_never_filters(self):
        valid = (1024,) + (0,) * 511
        assert histogram_intersection((), valid) == 1.0
        assert histogram_intersection(valid, (1, 2, 3)) == 1.0
        assert histogram_intersection((0,) * 512, valid) == 1.0


class TestHistogramCodec:
    """Test histogram storage encoding."""

    def test_round_trip(self):
        histogram = tuple(range(0, 65535, 128))[:512]
        data = encode_histogram(histogram)
        assert len(data) == 1024
        assert decode_histogram(data) == histogram

    def test_big_endian(self):
        assert encode_histogram((1,) + (0,) * 511)[:2] == b'\x00\x01'

    def test_counts_are_clamped(self):
        decoded = decode_histogram(encode_histogram((70000,) + (0,) * 511))
        assert decoded[0] == 65535

    def test_malformed_data_decodes_empty(self):
        assert decode_histogram(None) == ()
        assert decode_histogram(b'abc') == ()


class TestHexCodec:
    """Test 64-bit hash text encoding."""

    def test_hex_format(self):
        assert hash_to_hex(0xFFFFFFFFFFFFFFFF) == 'ffffffffffffffff'
        assert hash_to_hex(1) == '0000000000000001'

    def test_round_trip(self):
        for value in (0, 1, 0x8000000000000000, 0x0123456789ABCDEF):
            assert hex_to_hash(hash_to_hex(value)) == value
