"""Pytest configuration and shared fixtures for Mapius tests."""

import sys
from pathlib import Path

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

import pytest  # noqa: E402
from PIL import Image  # noqa: E402

from catalog.registry import MapSourceInfo, MapSourceRegistry  # noqa: E402
from geo.projections import Projection  # noqa: E402


class FakeTileIo:
    """Records submissions; completions are queued by the test."""

    def __init__(self):
        self.reads = []
        self.fetches = []
        self.aborts = 0
        self.completions = []

    def submit_read(self, key, path, generation):
        self.reads.append((key, path, generation))

    def submit_fetch(self, key, url, path, generation):
        self.fetches.append((key, url, path, generation))

    def abort_fetches(self):
        self.aborts += 1

    def drain(self, block=False, timeout=None):
        out, self.completions = self.completions, []
        return out


def make_source(source_id, projection=Projection.SPHERICAL_MERCATOR, title=None):
    return MapSourceInfo(
        id=source_id,
        title=title or source_id.upper(),
        tile_format='png',
        projection=projection,
        url_fn=lambda x, y, z: f'https://{source_id}.example.org/{z}/{x}/{y}.png',
    )


@pytest.fixture
def registry():
    return MapSourceRegistry(
        [
            make_source('osm', title='OpenStreetMap'),
            make_source('sat', Projection.ELLIPSOIDAL_MERCATOR, title='Satellite'),
        ],
        default_id='osm',
    )


@pytest.fixture
def fake_io():
    return FakeTileIo()


@pytest.fixture
def tile_image():
    return Image.new('RGB', (256, 256), (50, 60, 70))
