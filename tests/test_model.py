"""Tests for markerpin_viewer data model classes.

Tests: SpatialPoint, PinImage, SpatialMarker, Cartographic, GeoLocation, FeedRow, messages
Focus: Validation, positional identity, feed row parsing

Note: Fixtures are defined in conftest.py (pin images).
"""

import base64
import math

import pytest

from markerpin_viewer.model.feed_row import FeedRow
from markerpin_viewer.model.geo_location import Cartographic, GeoLocation
from markerpin_viewer.model.message import (
    DestinationNotFoundMessage,
    FeedErrorMessage,
    MarkerInstructionsMessage,
    MessageLevel,
    PlacementArmedMessage,
)
from markerpin_viewer.model.pin_image import PinImage
from markerpin_viewer.model.spatial_marker import SpatialMarker
from markerpin_viewer.model.spatial_point import SpatialPoint


class TestSpatialPoint:
    """SpatialPoint - local spatial atom."""

    def test_distance_to(self) -> None:
        """3-4-5 triangle plus a vertical offset."""
        a = SpatialPoint(x=0.0, y=0.0, z=0.0)
        b = SpatialPoint(x=3.0, y=4.0, z=12.0)
        assert a.distance_to(b) == 13.0

    def test_as_list_and_default_height(self) -> None:
        """Pydeck METER_OFFSETS order, z defaults to ground."""
        assert SpatialPoint(x=1.5, y=-2.0).as_list() == [1.5, -2.0, 0.0]


class TestPinImage:
    """PinImage - shared pin image."""

    def test_data_url_is_base64(self, pin_image: PinImage) -> None:
        prefix = "data:image/svg+xml;base64,"
        assert pin_image.data_url.startswith(prefix)
        assert base64.b64decode(pin_image.data_url[len(prefix) :]) == pin_image.data

    def test_icon_data_anchors_tip_at_bottom(self, pin_image: PinImage) -> None:
        icon = pin_image.icon_data()
        assert icon["width"] == 30 and icon["height"] == 30
        assert icon["anchorY"] == 30

    def test_repr_hides_bytes(self, pin_image: PinImage) -> None:
        assert "data=" not in repr(pin_image)


class TestSpatialMarker:
    """SpatialMarker - positional identity, image required."""

    def test_equality_is_positional(self, pin_image: PinImage, other_pin_image: PinImage) -> None:
        """Same position with different images are equal markers."""
        p = SpatialPoint(x=10.0, y=20.0)
        assert SpatialMarker(position=p, image=pin_image) == SpatialMarker(position=p, image=other_pin_image)
        assert hash(SpatialMarker(position=p, image=pin_image)) == hash(SpatialMarker(position=p, image=other_pin_image))

    def test_different_positions_differ(self, pin_image: PinImage) -> None:
        a = SpatialMarker(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        b = SpatialMarker(position=SpatialPoint(x=0.0, y=1.0), image=pin_image)
        assert a != b

    def test_missing_image_rejected(self) -> None:
        with pytest.raises(ValueError, match="requires an image"):
            SpatialMarker(position=SpatialPoint(x=0.0, y=0.0), image=None)  # type: ignore[arg-type]

    def test_position_is_immutable(self, pin_image: PinImage) -> None:
        marker = SpatialMarker(position=SpatialPoint(x=0.0, y=0.0), image=pin_image)
        with pytest.raises(AttributeError):
            marker.position = SpatialPoint(x=1.0, y=1.0)  # type: ignore[misc]


class TestGeoLocation:
    """Cartographic and GeoLocation height refinement."""

    def test_with_height_returns_copy(self) -> None:
        location = GeoLocation(center=Cartographic(lon=-1.2, lat=52.77), name="Loughborough")
        refined = location.with_height(65.0)
        assert refined.center.height == 65.0
        assert location.center.height == 0.0
        assert refined.name == "Loughborough"

    def test_lon_lat_order(self) -> None:
        assert Cartographic(lon=10.0, lat=47.0).lon_lat == (10.0, 47.0)


class TestFeedRow:
    """FeedRow.from_dict - parsing and validation of feed payloads."""

    def test_parses_long_lat_and_key(self) -> None:
        row = FeedRow.from_dict({"id": 7, "long": -1.2, "lat": 52.7})
        assert row == FeedRow(lon=-1.2, lat=52.7, height=0.0, key="7")

    @pytest.mark.parametrize(
        "payload",
        [
            {"lon": 1.0, "lat": 2.0},
            {"longitude": 1.0, "latitude": 2.0},
            {"long": "1.0", "lat": "2.0"},
        ],
    )
    def test_accepts_field_aliases_and_numeric_strings(self, payload: dict) -> None:
        row = FeedRow.from_dict(payload)
        assert (row.lon, row.lat) == (1.0, 2.0)
        assert row.key is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"long": 1.0},  # missing latitude
            {"lat": 1.0},  # missing longitude
            {"long": "east", "lat": 1.0},
            {"long": 1.0, "lat": True},
            {"long": 1.0, "lat": math.nan},
            {"long": 1.0, "lat": 91.0},
            {"long": 181.0, "lat": 0.0},
            ["not", "a", "dict"],
        ],
    )
    def test_malformed_rows_raise_value_error(self, payload: object) -> None:
        with pytest.raises(ValueError):
            FeedRow.from_dict(payload)  # type: ignore[arg-type]

    def test_height_is_ground_level(self) -> None:
        """Rows never carry a height; markers sit on the ground."""
        assert FeedRow.from_dict({"long": 1.0, "lat": 2.0, "height": 500.0}).height == 0.0


class TestMessages:
    """User-facing messages know their level and text."""

    def test_levels(self) -> None:
        assert MarkerInstructionsMessage().level == MessageLevel.INFO
        assert PlacementArmedMessage(pin_display_name="Celery Pin").level == MessageLevel.WARNING
        assert FeedErrorMessage(error="timeout").level == MessageLevel.ERROR

    def test_texts_include_details(self) -> None:
        assert "Celery Pin" in PlacementArmedMessage(pin_display_name="Celery Pin").message
        assert "Atlantis" in DestinationNotFoundMessage(destination="Atlantis").message
        assert "timeout" in FeedErrorMessage(error="timeout").message
