"""Tests for ViewportController."""

from __future__ import annotations

import pytest
from PIL import Image

from geo.projections import ProjectionService
from shared.constants import CURSOR_HIDE_DELAY_S, MAX_ZOOM, PAN_STEP_PX, Direction
from shared.events import CallbackObserver, Observable, ViewerEvent
from tiles.cache import TileCache
from tiles.io_worker import DiskReadResult, FetchResult
from tiles.key import TileKey
from tiles.loader import TileLoader
from viewer.controller import ViewportController
from viewer.state import ViewportState


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def events():
    observable = Observable()
    observable.received = []
    observable.add_observer(CallbackObserver(observable.received.append))
    return observable


@pytest.fixture
def cache():
    return TileCache()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loader(registry, cache, fake_io, events, tmp_path):
    return TileLoader(registry, cache, fake_io, tmp_path, events)


@pytest.fixture
def make_controller(registry, cache, loader, events, clock):
    def factory(**state_kwargs):
        state_kwargs.setdefault('map_id', 'osm')
        return ViewportController(
            ViewportState(**state_kwargs),
            registry,
            ProjectionService(),
            cache,
            loader,
            events,
            clock=clock,
        )

    return factory


def _of(events, kind):
    return [e.data for e in events.received if e.event == kind]


class TestConstruction:
    def test_unknown_initial_map(self, make_controller):
        with pytest.raises(KeyError):
            make_controller(map_id='nope')

    def test_source(self, make_controller):
        assert make_controller().source.title == 'OpenStreetMap'


class TestPan:
    """Tests for keyboard pan and drag."""

    def test_pan(self, make_controller, events):
        ctrl = make_controller(zoom=3, center_x=500, center_y=400)
        ctrl.pan(10, -20)
        assert (ctrl.state.center_x, ctrl.state.center_y) == (510, 380)
        assert len(_of(events, ViewerEvent.REPAINT_REQUESTED)) == 1

    @pytest.mark.parametrize(('direction', 'delta'), [
        (Direction.LEFT, (-PAN_STEP_PX, 0)),
        (Direction.RIGHT, (PAN_STEP_PX, 0)),
        (Direction.UP, (0, -PAN_STEP_PX)),
        (Direction.DOWN, (0, PAN_STEP_PX)),
    ])
    def test_pan_direction(self, make_controller, direction, delta):
        ctrl = make_controller(zoom=3, center_x=500, center_y=400)
        ctrl.pan_direction(direction)
        assert (ctrl.state.center_x - 500, ctrl.state.center_y - 400) == delta

    def test_pan_keeps_generation(self, make_controller):
        ctrl = make_controller(zoom=3)
        ctrl.pan(100, 100)
        assert ctrl.state.generation == 0

    def test_drag(self, make_controller):
        ctrl = make_controller(zoom=3, center_x=500, center_y=400)
        ctrl.press(100, 100)
        assert ctrl.motion(150, 120) is True
        assert (ctrl.state.center_x, ctrl.state.center_y) == (450, 380)
        ctrl.motion(90, 100)
        assert (ctrl.state.center_x, ctrl.state.center_y) == (510, 400)
        assert ctrl.release(90, 100, 800, 600) is False
        assert ctrl.state.cursor is None

    def test_motion_without_press(self, make_controller):
        ctrl = make_controller(zoom=3, center_x=500, center_y=400)
        assert ctrl.motion(150, 120) is False
        assert ctrl.state.center_x == 500


class TestCursorMarker:
    """Tests for the tap marker."""

    def test_tap_places_marker(self, make_controller, clock):
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.press(410, 310)
        assert ctrl.release(412, 308, 800, 600) is True

        k = 2 ** (MAX_ZOOM - 2)
        assert ctrl.state.cursor.x == (412 - 400 + 512) * k
        assert ctrl.state.cursor.y == (308 - 300 + 512) * k
        assert ctrl.state.cursor.expires_at == clock.now + CURSOR_HIDE_DELAY_S
        assert ctrl.cursor_screen_position(800, 600) == (412, 308)

    def test_marker_follows_zoom_and_pan(self, make_controller):
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.press(400, 300)
        ctrl.release(400, 300, 800, 600)
        ctrl.change_zoom(zoom_in=True)
        # Marker was at the center; zooming about the center keeps it there
        assert ctrl.cursor_screen_position(800, 600) == (400, 300)
        ctrl.pan(50, 0)
        assert ctrl.cursor_screen_position(800, 600) == (350, 300)

    def test_threshold(self, make_controller):
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.press(100, 100)
        assert ctrl.release(105, 100, 800, 600) is False
        ctrl.press(100, 100)
        assert ctrl.release(104, 96, 800, 600) is True

    def test_new_tap_replaces_marker(self, make_controller, clock):
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.press(400, 300)
        ctrl.release(400, 300, 800, 600)
        clock.now += 3
        ctrl.press(200, 200)
        ctrl.release(200, 200, 800, 600)
        assert ctrl.cursor_screen_position(800, 600) == (200, 200)
        assert ctrl.state.cursor.expires_at == clock.now + CURSOR_HIDE_DELAY_S

    def test_expiry(self, make_controller, clock, events):
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.press(400, 300)
        ctrl.release(400, 300, 800, 600)
        assert ctrl.cursor_visible() is True
        assert ctrl.expire_cursor() is False

        clock.now += CURSOR_HIDE_DELAY_S
        assert ctrl.cursor_visible() is False
        repaints = len(_of(events, ViewerEvent.REPAINT_REQUESTED))
        assert ctrl.expire_cursor() is True
        assert ctrl.state.cursor is None
        assert len(_of(events, ViewerEvent.REPAINT_REQUESTED)) == repaints + 1
        assert ctrl.cursor_screen_position(800, 600) is None

    def test_no_marker(self, make_controller):
        ctrl = make_controller()
        assert ctrl.cursor_visible() is False
        assert ctrl.expire_cursor() is False


class TestZoom:
    """Tests for change_zoom / scroll."""

    def test_zoom_in_about_center(self, make_controller, events):
        ctrl = make_controller(zoom=3, center_x=1000, center_y=700)
        assert ctrl.change_zoom(zoom_in=True) is True
        assert ctrl.state.zoom == 4
        assert (ctrl.state.center_x, ctrl.state.center_y) == (2000, 1400)
        assert ctrl.state.generation == 1
        assert _of(events, ViewerEvent.ZOOM_CHANGED) == [{'zoom': 4}]

    @pytest.mark.parametrize(('dx', 'dy'), [(0, 0), (30, -20), (-399, 299), (7, 13)])
    def test_in_then_out_restores_center(self, make_controller, dx, dy):
        ctrl = make_controller(zoom=5, center_x=3001, center_y=4097)
        ctrl.change_zoom(dx, dy, zoom_in=True)
        ctrl.change_zoom(dx, dy, zoom_in=False)
        assert ctrl.state.zoom == 5
        assert (ctrl.state.center_x, ctrl.state.center_y) == (3001, 4097)

    @pytest.mark.parametrize(('dx', 'dy'), [(0, 0), (30, -20), (-399, 299)])
    def test_out_then_in_within_rounding(self, make_controller, dx, dy):
        ctrl = make_controller(zoom=5, center_x=3001, center_y=4097)
        ctrl.change_zoom(dx, dy, zoom_in=False)
        ctrl.change_zoom(dx, dy, zoom_in=True)
        assert abs(ctrl.state.center_x - 3001) <= 1
        assert abs(ctrl.state.center_y - 4097) <= 1

    def test_anchor_point_stays_under_pointer(self, make_controller):
        ctrl = make_controller(zoom=6, center_x=5000, center_y=6000)
        dx, dy = 120, -80
        world_before = (ctrl.state.center_x + dx, ctrl.state.center_y + dy)
        ctrl.change_zoom(dx, dy, zoom_in=True)
        world_after = (ctrl.state.center_x + dx, ctrl.state.center_y + dy)
        assert world_after == (world_before[0] * 2, world_before[1] * 2)

    def test_scroll_uses_pointer_offset(self, make_controller):
        ctrl = make_controller(zoom=6, center_x=5000, center_y=6000)
        ctrl.scroll(520, 220, 800, 600, zoom_in=True)
        # pointer offset (120, -80)
        assert (ctrl.state.center_x, ctrl.state.center_y) == (10120, 11920)

    @pytest.mark.parametrize(('zoom', 'zoom_in'), [(MAX_ZOOM, True), (0, False)])
    def test_limits_are_no_op(self, make_controller, fake_io, events, zoom, zoom_in):
        ctrl = make_controller(zoom=zoom, center_x=300, center_y=200)
        assert ctrl.change_zoom(10, 10, zoom_in=zoom_in) is False
        assert ctrl.state.zoom == zoom
        assert (ctrl.state.center_x, ctrl.state.center_y) == (300, 200)
        assert ctrl.state.generation == 0
        assert fake_io.aborts == 0
        assert _of(events, ViewerEvent.ZOOM_CHANGED) == []

    def test_zoom_clears_loading(self, make_controller, loader, fake_io):
        ctrl = make_controller(zoom=3, center_x=1024, center_y=1024)
        ctrl.draw_plan(512, 512)
        for key, _path, generation in list(fake_io.reads):
            loader.apply(DiskReadResult(key, generation, None), ctrl.state.generation)
        assert loader.loading_count == 9

        ctrl.change_zoom(zoom_in=True)

        assert loader.loading_count == 0
        assert fake_io.aborts == 1

    def test_late_fetch_after_zoom_does_not_touch_loading(
        self, make_controller, loader, fake_io, cache
    ):
        ctrl = make_controller(zoom=0)
        ctrl.draw_plan(256, 256)
        key = TileKey('osm', 0, 0, 0)
        loader.apply(DiskReadResult(key, 0, None), 0)
        ctrl.change_zoom(zoom_in=True)
        ctrl.change_zoom(zoom_in=False)
        ctrl.draw_plan(256, 256)
        loader.apply(DiskReadResult(key, 2, None), 2)
        assert loader.is_loading(key)

        image = Image.new('RGB', (256, 256))
        fake_io.completions.append(FetchResult(key, 0, ok=True, status=200, image=image))
        ctrl.process_completions()

        assert cache.get(key) is image
        assert loader.is_loading(key)


class TestChangeMap:
    """Tests for change_map()."""

    def test_unknown_map_is_no_op(self, make_controller, events):
        ctrl = make_controller(zoom=3, center_x=100, center_y=100)
        assert ctrl.change_map('nope') is False
        assert ctrl.state.map_id == 'osm'
        assert ctrl.state.generation == 0
        assert _of(events, ViewerEvent.MAP_CHANGED) == []

    def test_same_projection_keeps_center(self, make_controller, registry, events):
        ctrl = make_controller(zoom=3, center_x=100, center_y=100)
        ctrl.change_map('osm')
        assert (ctrl.state.center_x, ctrl.state.center_y) == (100, 100)
        assert ctrl.state.generation == 1
        assert _of(events, ViewerEvent.MAP_CHANGED) == [{'title': 'OpenStreetMap'}]

    def test_reprojection_round_trip(self, make_controller, fake_io):
        ctrl = make_controller(zoom=12, center_x=700_000, center_y=300_000)
        assert ctrl.change_map('sat') is True
        assert ctrl.state.map_id == 'sat'
        assert ctrl.state.center_y != 300_000
        assert ctrl.change_map('osm') is True
        assert abs(ctrl.state.center_x - 700_000) <= 1
        assert abs(ctrl.state.center_y - 300_000) <= 1
        assert ctrl.state.generation == 2
        assert fake_io.aborts == 2

    def test_map_change_clears_loading(self, make_controller, loader, fake_io):
        ctrl = make_controller(zoom=1, center_x=256, center_y=256)
        ctrl.draw_plan(512, 512)
        for key, _path, generation in list(fake_io.reads):
            loader.apply(DiskReadResult(key, generation, None), 0)
        assert loader.loading_count == 4
        ctrl.change_map('sat')
        assert loader.loading_count == 0


class TestDrawPlan:
    """Tests for the paint pass."""

    def test_missing_tile_requested(self, make_controller, fake_io):
        ctrl = make_controller()
        (placement,) = ctrl.draw_plan(256, 256)
        assert placement.key == TileKey('osm', 0, 0, 0)
        assert (placement.draw_x, placement.draw_y) == (0, 0)
        assert placement.image is None
        assert placement.placeholder is False
        assert [r[0] for r in fake_io.reads] == [TileKey('osm', 0, 0, 0)]

    def test_cached_tile_drawn_and_touched(self, make_controller, cache, fake_io):
        ctrl = make_controller()
        ctrl.state.generation = 7
        image = Image.new('RGB', (256, 256))
        cache.put(TileKey('osm', 0, 0, 0), image, 1)
        (placement,) = ctrl.draw_plan(256, 256)
        assert placement.image is image
        assert cache.entry(TileKey('osm', 0, 0, 0)).last_used_generation == 7
        assert fake_io.reads == []

    def test_placeholder_from_ancestor(self, make_controller, cache):
        ctrl = make_controller(zoom=1, center_x=256, center_y=256)
        cache.put(TileKey('osm', 0, 0, 0), Image.new('RGB', (256, 256), (9, 9, 9)), 0)
        placements = ctrl.draw_plan(512, 512)
        assert len(placements) == 4
        for placement in placements:
            assert placement.placeholder is True
            assert placement.image.size == (256, 256)
            assert placement.image.getpixel((0, 0)) == (9, 9, 9)

    def test_other_map_tiles_not_used(self, make_controller, cache):
        ctrl = make_controller()
        cache.put(TileKey('sat', 0, 0, 0), Image.new('RGB', (256, 256)), 0)
        (placement,) = ctrl.draw_plan(256, 256)
        assert placement.image is None

    def test_purges_after_pass(self, make_controller, cache):
        cache.purge_threshold = 2
        ctrl = make_controller(zoom=2, center_x=512, center_y=512)
        ctrl.state.generation = 10
        old = Image.new('RGB', (256, 256))
        for x in range(4):
            cache.put(TileKey('osm', 5, x, 0), old, 0)
        visible = TileKey('osm', 2, 1, 1)
        cache.put(visible, old, 0)

        ctrl.draw_plan(256, 256)

        assert visible in cache
        assert TileKey('osm', 5, 0, 0) not in cache
        assert len(cache) == 1

    def test_process_completions_uses_current_generation(
        self, make_controller, fake_io, cache, events
    ):
        ctrl = make_controller()
        ctrl.state.generation = 3
        image = Image.new('RGB', (256, 256))
        fake_io.completions.append(DiskReadResult(TileKey('osm', 0, 0, 0), 3, image))
        assert ctrl.process_completions() == 1
        assert cache.entry(TileKey('osm', 0, 0, 0)).last_used_generation == 3
        assert len(_of(events, ViewerEvent.REPAINT_REQUESTED)) == 1

    def test_scale_bar(self, make_controller):
        assert make_controller().scale_bar().label == '10000 km'
