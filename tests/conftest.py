"""
Pytest configuration and fixtures for ShelfReader tests.
"""

import sys
from pathlib import Path
from typing import Callable, List, Tuple

import cv2
import numpy as np
import pytest
from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfreader.config import Settings, SegmentationConfig, OCRConfig, ParsingConfig
from shelfreader.vision.segmenter import Rect, Segment


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        segmentation=SegmentationConfig(),
        ocr=OCRConfig(max_parallelism=2),
        parsing=ParsingConfig(),
    )


# =============================================================================
# Image Fixtures
# =============================================================================

# (x, width) of each synthetic spine; all spines span y = 90..390
SPINE_LAYOUT = [(50, 40), (130, 46), (216, 52), (308, 40), (388, 58)]
SPINE_TOP = 90
SPINE_BOTTOM = 390


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def shelf_image() -> np.ndarray:
    """Synthetic 640x480 bookshelf: dark upright spines on a light wall."""
    image = np.full((480, 640, 3), 235, dtype=np.uint8)

    spine_colors = [
        (40, 40, 140),
        (40, 120, 40),
        (140, 40, 40),
        (30, 90, 120),
        (110, 40, 110),
    ]

    for (x, width), color in zip(SPINE_LAYOUT, spine_colors):
        cv2.rectangle(image, (x, SPINE_TOP), (x + width, SPINE_BOTTOM), color, thickness=-1)

    return image


@pytest.fixture
def shelf_png(shelf_image) -> bytes:
    """Encoded synthetic bookshelf."""
    return encode_png(shelf_image)


@pytest.fixture
def blank_png() -> bytes:
    """Featureless image with no spines."""
    return encode_png(np.full((200, 300, 3), 255, dtype=np.uint8))


@pytest.fixture
def spine_png() -> bytes:
    """Single tall spine crop (100 high, 40 wide)."""
    image = np.full((100, 40, 3), 200, dtype=np.uint8)
    image[10:90, 5:35] = (30, 30, 30)
    return encode_png(image)


@pytest.fixture
def make_segments() -> Callable[[List[Tuple[int, int, int, int]]], List[Segment]]:
    """Build segments with placeholder image data from bounding boxes."""
    def _make(boxes):
        return [
            Segment(bounding_box=Rect(*box), image_data=bytes([i + 1]))
            for i, box in enumerate(boxes)
        ]
    return _make


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
