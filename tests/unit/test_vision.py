"""
Unit tests for spine segmentation.
"""

import dataclasses

import cv2
import numpy as np
import pytest

from shelfreader.config import SegmentationConfig
from shelfreader.exceptions import ImageTooLargeError
from shelfreader.vision.segmenter import SpineSegmenter, Segment, Rect

from tests.conftest import SPINE_LAYOUT, SPINE_TOP, SPINE_BOTTOM, encode_png


def decode(segment: Segment) -> np.ndarray:
    return cv2.imdecode(np.frombuffer(segment.image_data, dtype=np.uint8), cv2.IMREAD_COLOR)


class TestRect:
    """Tests for the Rect value type."""

    def test_empty_when_width_or_height_not_positive(self):
        assert Rect(0, 0, 0, 10).is_empty
        assert Rect(0, 0, 10, -1).is_empty
        assert not Rect(0, 0, 1, 1).is_empty

    def test_intersect_clips_to_bounds(self):
        clipped = Rect(-10, 20, 50, 100).intersect(Rect(0, 0, 30, 60))
        assert clipped == Rect(0, 20, 30, 40)

    def test_intersect_disjoint_is_empty(self):
        assert Rect(0, 0, 10, 10).intersect(Rect(20, 20, 5, 5)).is_empty

    def test_aspect_ratio_is_width_over_height(self):
        assert Rect(0, 0, 20, 100).aspect_ratio == pytest.approx(0.2)


class TestSpineSegmenter:
    """Tests for SpineSegmenter."""

    @pytest.fixture
    def segmenter(self):
        return SpineSegmenter(SegmentationConfig())

    def test_finds_each_spine_left_to_right(self, segmenter, shelf_png):
        segments = segmenter.segment(shelf_png)

        assert len(segments) == len(SPINE_LAYOUT)
        xs = [s.bounding_box.x for s in segments]
        assert xs == sorted(xs)
        for segment, (x, width) in zip(segments, SPINE_LAYOUT):
            assert abs(segment.bounding_box.x - x) <= 3
            assert abs(segment.bounding_box.width - width) <= 6

    def test_bounding_box_is_upright_source_box(self, segmenter, shelf_png):
        segments = segmenter.segment(shelf_png)

        for segment in segments:
            assert abs(segment.bounding_box.y - SPINE_TOP) <= 3
            assert abs(segment.bounding_box.height - (SPINE_BOTTOM - SPINE_TOP)) <= 6

    def test_segments_are_independent_upright_crops(self, segmenter, shelf_png):
        segments = segmenter.segment(shelf_png)

        for segment in segments:
            assert isinstance(segment.image_data, bytes)
            crop = decode(segment)
            assert crop is not None
            height, width = crop.shape[:2]
            # Long axis vertical
            assert height > width
            # Crop covers the (dark) spine, not the light wall
            assert crop.mean() < 150

    def test_segments_are_immutable(self, segmenter, shelf_png):
        segment = segmenter.segment(shelf_png)[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            segment.image_data = b""

    def test_stops_when_max_segments_reached(self, shelf_png, log_messages):
        segmenter = SpineSegmenter(SegmentationConfig(max_segments=3))

        segments = segmenter.segment(shelf_png)

        assert len(segments) == 3
        # Leftmost regions are kept
        assert [s.bounding_box.x for s in segments] == sorted(s.bounding_box.x for s in segments)
        assert abs(segments[0].bounding_box.x - SPINE_LAYOUT[0][0]) <= 3
        assert abs(segments[-1].bounding_box.x - SPINE_LAYOUT[2][0]) <= 3
        assert any("Max segment limit of 3" in m for m in log_messages)

    def test_zero_max_segments_means_uncapped(self, shelf_png):
        segmenter = SpineSegmenter(SegmentationConfig(max_segments=0))
        assert len(segmenter.segment(shelf_png)) == len(SPINE_LAYOUT)

    def test_raises_when_image_exceeds_pixel_limit(self, shelf_png):
        segmenter = SpineSegmenter(SegmentationConfig(max_image_pixels=10_000))

        with pytest.raises(ImageTooLargeError, match="pixels"):
            segmenter.segment(shelf_png)

    def test_undecodable_buffer_returns_empty(self, segmenter):
        assert segmenter.segment(b"definitely not an image") == []

    def test_empty_buffer_returns_empty(self, segmenter):
        assert segmenter.segment(b"") == []

    def test_featureless_image_returns_empty(self, segmenter, blank_png):
        assert segmenter.segment(blank_png) == []

    def test_rejects_regions_outside_aspect_bounds(self, shelf_png):
        # Spines are ~0.13-0.2 wide/high; demand squarer regions
        segmenter = SpineSegmenter(SegmentationConfig(min_aspect_ratio=0.5))
        assert segmenter.segment(shelf_png) == []

    def test_rejects_specks_by_area(self):
        image = np.full((400, 400, 3), 235, dtype=np.uint8)
        cv2.rectangle(image, (100, 100), (103, 120), (20, 20, 20), thickness=-1)

        segments = SpineSegmenter(SegmentationConfig()).segment(encode_png(image))

        assert segments == []

    def test_tilted_spine_is_rotated_upright(self):
        image = np.full((400, 400, 3), 235, dtype=np.uint8)
        box = cv2.boxPoints(((200, 200), (40, 260), 12.0)).astype(np.int32)
        cv2.fillPoly(image, [box], (30, 30, 30))

        segments = SpineSegmenter(SegmentationConfig()).segment(encode_png(image))

        assert len(segments) == 1
        crop = decode(segments[0])
        height, width = crop.shape[:2]
        assert height > 3 * width
        assert crop.mean() < 150
