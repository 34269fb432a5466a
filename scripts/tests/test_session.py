#!/usr/bin/env python3
"""End-to-end tests for a sketch session with a fake tile server."""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from footprint_extruder.errors import DegeneratePolygonError, MosaicError, MountTargetError
from footprint_extruder.scene_host import SceneHost
from footprint_extruder.session import SketchSession
from footprint_extruder.tiles import locate, tile_grid

from conftest import FakeTileSource


@pytest.fixture
def session(config, fake_source):
    session = SketchSession(config, source=fake_source)
    session.start()
    return session


def close_shape(session, clicks):
    for x, y in clicks:
        session.click(x, y)


class TestSessionStart:
    """Tests for mounting and mosaic loading."""

    def test_background_is_mosaic(self, session):
        assert session.mosaic.complete
        assert session.host.background.size == (400, 500)
        assert session.host.background_revision >= 1
        assert session.center == locate(40.6892, -74.0, 18)

    def test_failed_tile_aborts(self, config):
        """Test a failed tile surfaces as an error instead of a partial mosaic."""
        center = locate(config.mosaic.lat, config.mosaic.lng, config.mosaic.zoom)
        source = FakeTileSource(fail=[tile_grid(center, 3)[0]])
        session = SketchSession(config, source=source)

        with pytest.raises(MosaicError):
            session.start()
        assert session.surface is None

    def test_source_closed_after_load(self, session, fake_source):
        """Test the tile source is released once the mosaic is built."""
        assert fake_source.closed
        assert len(fake_source.requested) == 9

    def test_source_closed_after_failed_load(self, config):
        center = locate(config.mosaic.lat, config.mosaic.lng, config.mosaic.zoom)
        source = FakeTileSource(fail=[tile_grid(center, 3)[4]])
        session = SketchSession(config, source=source)

        with pytest.raises(MosaicError):
            session.start()
        assert source.closed

    def test_missing_target_aborts(self, config, fake_source):
        session = SketchSession(config, source=fake_source)
        session.target = None
        with pytest.raises(MountTargetError):
            session.start()
        assert fake_source.requested == []


class TestSketchAndExtrude:
    """Tests for the sketch -> extrude flow."""

    def test_clicks_draw_on_background(self, session):
        """Test each click repaints the background texture."""
        before = session.host.background_revision
        session.click(50, 50)
        session.click(150, 50)
        assert session.host.background_revision == before + 2
        assert session.points == [(50.0, 50.0), (150.0, 50.0)]

    def test_closure_builds_initial_solid(self, session, triangle_clicks):
        """Test closing the shape reveals the height input and builds at the initial height."""
        assert not session.height_control.visible
        assert session.solid is None

        close_shape(session, triangle_clicks)

        assert session.is_closed
        assert session.confirm_enabled
        assert session.height_control.visible
        assert session.solid.extent == pytest.approx(0.1)
        assert len(session.host.lights) == 2

    def test_height_changes_replace_solid(self, session, triangle_clicks):
        """Test many height edits leave one building of the last height."""
        close_shape(session, triangle_clicks)
        for value in (1.0, 2.5, 7.3, 4.0):
            session.set_height(value)

        assert session.host.solid_count == 1
        assert session.solid.extent == pytest.approx(4.0)
        assert len(session.host.lights) == 2

    def test_height_clamped_by_control(self, session, triangle_clicks):
        close_shape(session, triangle_clicks)
        assert session.set_height(42) == 10.0
        assert session.solid.extent == pytest.approx(10.0)

    def test_height_before_closure_builds_nothing(self, session):
        session.click(50, 50)
        session.set_height(3.0)
        assert session.solid is None
        assert session.host.solid_count == 0

    def test_clicks_after_closure_ignored(self, session, triangle_clicks):
        close_shape(session, triangle_clicks)
        revision = session.host.background_revision

        session.click(250, 250)

        assert len(session.points) == 4
        assert session.host.background_revision == revision

    def test_collinear_closure_builds_no_solid(self, session):
        """Test a closed but flat footprint raises and leaves the scene empty."""
        session.click(100, 100)
        session.click(200, 100)
        session.click(300, 100)

        with pytest.raises(DegeneratePolygonError):
            session.click(102, 100)

        assert session.is_closed
        assert session.solid is None
        assert session.host.solid_count == 0
        assert session.host.lights == []

    def test_single_solid_node(self, session, triangle_clicks):
        close_shape(session, triangle_clicks)
        session.set_height(2.0)
        assert list(session.host.scene.geometry) == [SceneHost.SOLID_NODE]


class TestExport:
    """Tests for writing session artifacts."""

    def test_export_after_closure(self, session, triangle_clicks, temp_dir):
        close_shape(session, triangle_clicks)
        session.set_height(3.0)

        written = session.export(temp_dir / "out")

        assert written["sketch"].exists()
        assert written["building"].read_bytes()[:4] == b"glTF"

    def test_export_open_shape(self, session, temp_dir):
        """Test an unfinished sketch exports only the overlay."""
        session.click(50, 50)
        written = session.export(temp_dir)
        assert set(written) == {"sketch"}
