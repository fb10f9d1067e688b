"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import shutil
from pathlib import Path

import numpy as np
from PIL import Image

from photosift.models import FeatureRecord, PhotoMetadata
from photosift.scanner.errors import DecodeError


def random_rgb(seed: int, width: int, height: int) -> np.ndarray:
    """Deterministic random RGB array of shape (height, width, 3)."""
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def solid_rgb(color, width: int, height: int) -> np.ndarray:
    """Uniform RGB array of shape (height, width, 3)."""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :] = color
    return pixels


def make_record(
    identifier,
    captured_at=0.0,
    dhash=0,
    phash=0,
    edge_hash=0,
    histogram=None,
    width=4000,
    height=3000,
    file_size=2_000_000,
):
    """FeatureRecord with a single-bin histogram unless one is given."""
    if histogram is None:
        histogram = (1024,) + (0,) * 511
    return FeatureRecord(
        identifier=identifier,
        dhash=dhash,
        phash=phash,
        edge_hash=edge_hash,
        color_histogram=tuple(histogram),
        width=width,
        height=height,
        file_size=file_size,
        captured_at=captured_at,
    )


class FakeDecoder:
    """
    In-memory ImageDecoder.

    Each identifier maps to an RGB seed (int) or a solid color (tuple);
    unknown identifiers raise DecodeError.
    """

    def __init__(self, sources):
        self.sources = dict(sources)
        self.calls = []

    def _pixels(self, identifier, width, height):
        self.calls.append(identifier)
        source = self.sources.get(identifier)
        if source is None:
            raise DecodeError(identifier, "no such photo")
        if isinstance(source, tuple):
            return solid_rgb(source, width, height)
        return random_rgb(source, width, height)

    def decode_hash_views(self, identifier):
        return self._pixels(identifier, 9, 8), self._pixels(identifier, 32, 32)

    def decode_quality_view(self, identifier):
        return self._pixels(identifier, 256, 256)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def sample_images(temp_dir):
    """
    Create a set of sample photos for testing.

    Returns:
        dict with paths to:
        - burst1.png, burst2.png (identical textured photos)
        - blue.png (unique flat photo)
        - dark.png (all-black photo)
        - corrupted.jpg (not an image)
        - notes.txt (not an image extension)
    """
    images = {}

    textured = Image.fromarray(random_rgb(7, 120, 90))
    for name in ('burst1', 'burst2'):
        path = temp_dir / f"{name}.png"
        textured.save(path, 'PNG')
        images[name] = str(path)

    path = temp_dir / "blue.png"
    Image.new('RGB', (120, 90), color='blue').save(path, 'PNG')
    images['blue'] = str(path)

    path = temp_dir / "dark.png"
    Image.new('RGB', (120, 90), color='black').save(path, 'PNG')
    images['dark'] = str(path)

    path = temp_dir / "corrupted.jpg"
    path.write_text("not an image")
    images['corrupted'] = str(path)

    path = temp_dir / "notes.txt"
    path.write_text("not an image either")
    images['notes'] = str(path)

    return images


@pytest.fixture
def temp_cache_db(temp_dir):
    """Create a temporary database file for cache tests."""
    db_path = temp_dir / "test_cache.db"
    return str(db_path)


@pytest.fixture
def burst_metadata():
    """Two identical photos 5 s apart, a flat blue one, and one that can't be decoded."""
    return [
        PhotoMetadata('a', width=64, height=64, file_size=10_000, captured_at=1000.0),
        PhotoMetadata('b', width=64, height=64, file_size=10_000, captured_at=1005.0),
        PhotoMetadata('c', width=64, height=64, file_size=10_000, captured_at=1010.0),
        PhotoMetadata('bad', width=64, height=64, file_size=10_000, captured_at=1015.0),
    ]


@pytest.fixture
def burst_decoder():
    """Decoder for burst_metadata ('bad' is missing)."""
    return FakeDecoder({'a': 3, 'b': 3, 'c': (0, 0, 255)})


@pytest.fixture
def isolated_user_config(temp_dir, monkeypatch):
    """Point the user config at an empty temp directory."""
    from photosift.user_config import get_user_config

    for name in ('PHOTOSIFT_WORKERS', 'PHOTOSIFT_DECODE_CONCURRENCY', 'PHOTOSIFT_ADAPTIVE_WINDOWS',
                 'PHOTOSIFT_FLAG_NOISE', 'PHOTOSIFT_MAX_PIXELS', 'PHOTOSIFT_CACHE_MAX_AGE',
                 'PHOTOSIFT_CACHE_DB', 'PHOTOSIFT_SIMILARITY'):
        monkeypatch.delenv(name, raising=False)
    config_dir = temp_dir / "config"
    monkeypatch.setenv('PHOTOSIFT_CONFIG_DIR', str(config_dir))

    config = get_user_config()
    config.reload()
    yield config
    config.reload()
