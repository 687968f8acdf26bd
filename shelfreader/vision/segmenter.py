"""
Book Spine Segmenter

Contour-based segmentation of a bookshelf photograph into upright spine crops.
"""

from typing import List, Optional, Tuple, Dict
from dataclasses import dataclass
import numpy as np
import cv2
from loguru import logger

from shelfreader.config import SegmentationConfig
from shelfreader.exceptions import ImageTooLargeError


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in source-image coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def area(self) -> int:
        return 0 if self.is_empty else self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        """Width / Height ratio. Upright spines are well below 1."""
        if self.height <= 0:
            return float('inf')
        return self.width / self.height

    def intersect(self, other: 'Rect') -> 'Rect':
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x + self.width, other.x + other.width)
        y2 = min(self.y + self.height, other.y + other.height)
        return Rect(x1, y1, max(0, x2 - x1), max(0, y2 - y1))

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Segment:
    """
    One detected spine.

    image_data is an independently encoded PNG of the rotation-corrected crop;
    bounding_box is the upright box of the contour before correction.
    """
    bounding_box: Rect
    image_data: bytes


class SpineSegmenter:
    """
    Finds book spines with classical edge/contour analysis.

    Pipeline:
    1. Decode, enforce pixel budget
    2. Grayscale -> Gaussian blur -> Canny -> morphological close
    3. External contours, scanned left to right
    4. Area / aspect filtering on the upright bounding box
    5. Rotation correction from the minimum-area rectangle
    6. Crop, clip to image bounds, re-encode as PNG

    Usage:
        segmenter = SpineSegmenter(SegmentationConfig())
        segments = segmenter.segment(image_bytes)
    """

    BLUR_KERNEL = (5, 5)
    CANNY_LOW = 30
    CANNY_HIGH = 120
    CLOSE_KERNEL = (5, 5)
    CLOSE_ITERATIONS = 2
    ENCODING = ".png"

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()

    def segment(self, image_data: bytes) -> List[Segment]:
        """
        Segment an encoded image into spine crops ordered left to right.

        Args:
            image_data: Encoded image bytes (PNG, JPEG, ...)

        Returns:
            List of Segments; empty when the image cannot be decoded or
            no region qualifies

        Raises:
            ImageTooLargeError: If the decoded image exceeds max_image_pixels
        """
        image = self._decode(image_data)
        if image is None:
            return []

        height, width = image.shape[:2]
        pixel_count = width * height
        if pixel_count > self.config.max_image_pixels:
            raise ImageTooLargeError(pixel_count, self.config.max_image_pixels)

        regions = self.find_regions(image)
        if not regions:
            return []

        max_segments = self.config.max_segments
        segments: List[Segment] = []

        for contour, rect in regions:
            crop = self.correct_rotation(image, contour)
            if crop is None:
                continue

            ok, buffer = cv2.imencode(self.ENCODING, crop)
            if not ok:
                continue

            segments.append(Segment(bounding_box=rect, image_data=buffer.tobytes()))

            if max_segments > 0 and len(segments) >= max_segments:
                logger.info(
                    f"Max segment limit of {max_segments} reached; stopping contour processing."
                )
                break

        segments.sort(key=lambda s: s.bounding_box.x)
        if max_segments > 0:
            segments = segments[:max_segments]

        return segments

    def find_regions(self, image: np.ndarray) -> List[Tuple[np.ndarray, Rect]]:
        """
        Locate contours whose bounding boxes look like spines.

        Returns (contour, bounding box) pairs in ascending x order.
        """
        closed = self._edge_map(image)
        contours, _ = cv2.findContours(closed, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        if not contours:
            return []

        image_area = image.shape[0] * image.shape[1]
        boxed = [(c, Rect(*cv2.boundingRect(c))) for c in contours]
        boxed.sort(key=lambda item: item[1].x)

        return [
            (contour, rect) for contour, rect in boxed
            if self._accepts(rect, image_area)
        ]

    def correct_rotation(self, image: np.ndarray, contour: np.ndarray) -> Optional[np.ndarray]:
        """
        Rotate the image so the contour's minimum-area rectangle is upright
        (long axis vertical) and crop it.

        Returns None when the clipped crop is empty.
        """
        (cx, cy), (rect_w, rect_h), angle = cv2.minAreaRect(contour)

        # Spines are tall: make the long side the crop height
        if rect_w > rect_h:
            angle -= 90
            rect_w, rect_h = rect_h, rect_w

        matrix = cv2.getRotationMatrix2D((cx, cy), angle, 1.0)
        img_h, img_w = image.shape[:2]
        rotated = cv2.warpAffine(
            image,
            matrix,
            (img_w, img_h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )

        crop_rect = Rect(
            int(round(cx - rect_w / 2)),
            int(round(cy - rect_h / 2)),
            int(round(rect_w)),
            int(round(rect_h)),
        ).intersect(Rect(0, 0, img_w, img_h))

        if crop_rect.is_empty:
            return None

        crop = rotated[
            crop_rect.y:crop_rect.y + crop_rect.height,
            crop_rect.x:crop_rect.x + crop_rect.width,
        ]
        if crop.size == 0:
            return None
        return crop.copy()

    def _decode(self, image_data: bytes) -> Optional[np.ndarray]:
        if not image_data:
            return None

        buffer = np.frombuffer(image_data, dtype=np.uint8)
        try:
            image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        except cv2.error as e:
            logger.warning(f"Unable to decode uploaded image for segmentation: {e}")
            return None

        if image is None or image.size == 0:
            logger.warning("Unable to decode uploaded image for segmentation")
            return None
        return image

    def _edge_map(self, image: np.ndarray) -> np.ndarray:
        """Edges closed enough to join a spine's left and right borders."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        blurred = cv2.GaussianBlur(gray, self.BLUR_KERNEL, 0)
        edges = cv2.Canny(blurred, self.CANNY_LOW, self.CANNY_HIGH)
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, self.CLOSE_KERNEL)
        return cv2.morphologyEx(
            edges, cv2.MORPH_CLOSE, kernel, iterations=self.CLOSE_ITERATIONS
        )

    def _accepts(self, rect: Rect, image_area: int) -> bool:
        if rect.is_empty:
            return False

        area_fraction = rect.area / image_area
        if not (self.config.min_area_fraction <= area_fraction <= self.config.max_area_fraction):
            return False

        return self.config.min_aspect_ratio <= rect.aspect_ratio <= self.config.max_aspect_ratio
