"""
OCR Engine

Pooled Tesseract recognition with multi-orientation retry for book spines.
"""

from typing import Callable, List, Optional, Tuple, Dict, Any
from dataclasses import dataclass, field
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path
import asyncio

import numpy as np
import cv2
import pytesseract
from PIL import Image
from loguru import logger

from shelfreader.config import OCRConfig


@dataclass
class OCRResult:
    """Result of OCR on one segment."""
    text: str = ""  # Best orientation's text
    confidence: float = 0.0  # Mean over all attempts
    attempts: List[str] = field(default_factory=list)  # Raw text per orientation

    @property
    def has_text(self) -> bool:
        return len(self.text.strip()) > 0


class TesseractWorker:
    """
    One reusable Tesseract engine instance.

    Holds the language/config for a single recognition at a time. Nothing
    carries over between calls, so any idle worker may serve any call.
    """

    def __init__(
        self,
        language: str = "eng",
        data_path: str = "",
        page_segmentation_mode: int = 3
    ):
        self.language = language
        self.config = f"--oem 3 --psm {page_segmentation_mode} -c tessedit_do_invert=0"
        if data_path:
            self.config = f'--tessdata-dir "{data_path}" ' + self.config

    def recognize(self, image: np.ndarray) -> Tuple[str, float]:
        """
        Recognize text in a BGR image.

        Returns:
            (text with one Tesseract line per text line, mean word confidence in [0, 1])
        """
        if image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        data = pytesseract.image_to_data(
            Image.fromarray(image),
            lang=self.language,
            config=self.config,
            output_type=pytesseract.Output.DICT
        )

        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences = []

        for i, raw in enumerate(data.get('text', [])):
            word = (raw or "").strip()
            conf = float(data['conf'][i])
            if not word or conf < 0:
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(word)
            confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines.values())
        mean_confidence = float(np.mean(confidences)) / 100.0 if confidences else 0.0
        return text, mean_confidence


class EnginePool:
    """
    Fixed-size pool of reusable workers behind a counting gate.

    The gate bounds concurrent recognitions to `size` across every caller
    sharing the pool. A worker is used by exactly one call at a time and is
    always returned, even if the call failed. A worker whose call is still
    running in a thread (the caller was cancelled mid-attempt) keeps its
    permit until that call finishes.
    """

    def __init__(self, size: int, factory: Callable[[], Any]):
        if size < 1:
            raise ValueError("Pool size must be at least 1")

        self.size = size
        self._factory = factory
        self._idle = deque(factory() for _ in range(size))
        self._gate = asyncio.Semaphore(size)
        self._in_flight: Dict[int, asyncio.Future] = {}

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @asynccontextmanager
    async def acquire(self):
        """Wait for a permit (cancellable), then lend out an idle worker."""
        await self._gate.acquire()
        try:
            worker = self._idle.pop()
        except IndexError:
            # Momentarily empty: never block on the pool itself
            worker = self._factory()
        try:
            yield worker
        finally:
            running = self._in_flight.pop(id(worker), None)
            if running is not None and not running.done():
                running.add_done_callback(lambda _: self._release(worker))
            else:
                self._release(worker)

    def track(self, worker: Any, future: asyncio.Future) -> None:
        """Record the call a lent-out worker is running."""
        self._in_flight[id(worker)] = future

    def _release(self, worker: Any) -> None:
        self._idle.append(worker)
        self._gate.release()


class OCREngine:
    """
    Multi-orientation spine OCR over a bounded worker pool.

    Each call runs recognition at 0°, 90° and 270° (spine text may run in
    any of these directions), keeps the most confident non-empty reading
    and reports the mean confidence of all attempts.

    Usage:
        async with OCREngine(OCRConfig(max_parallelism=4)) as engine:
            result = await engine.recognize(segment.image_data)
    """

    SPINE_ROTATION_ANGLES = [0, 90, 270]
    ROTATION_LABELS = {0: "0°", 90: "90°", 270: "270°"}

    def __init__(
        self,
        config: Optional[OCRConfig] = None,
        worker_factory: Optional[Callable[[], Any]] = None
    ):
        """
        Initialize the OCR engine.

        Args:
            config: Pool size, language and tessdata settings
            worker_factory: Builds one worker; defaults to TesseractWorker
        """
        self.config = config or OCRConfig()

        if self.config.data_path and not Path(self.config.data_path).is_dir():
            logger.warning(
                f"Tesseract data path '{self.config.data_path}' not found. "
                "OCR results may be degraded."
            )

        factory = worker_factory or (
            lambda: TesseractWorker(
                language=self.config.language,
                data_path=self.config.data_path,
                page_segmentation_mode=self.config.page_segmentation_mode
            )
        )

        parallelism = self.config.parallelism
        self.pool = EnginePool(parallelism, factory)
        self.executor = ThreadPoolExecutor(
            max_workers=parallelism,
            thread_name_prefix="ocr"
        )

        logger.info(f"OCREngine initialized (parallelism: {parallelism}, lang: {self.config.language})")

    async def recognize(self, image_data: bytes) -> OCRResult:
        """
        Recognize text in one encoded segment image.

        Engine faults are logged and downgraded to an empty result.
        Cancellation propagates.
        """
        if not image_data:
            return OCRResult()

        loop = asyncio.get_running_loop()

        async with self.pool.acquire() as worker:
            try:
                image = await loop.run_in_executor(self.executor, self._decode, image_data)

                attempts = []
                confidences = []
                best_text = ""
                best_confidence = -1.0

                for angle in self.SPINE_ROTATION_ANGLES:
                    rotated = self._rotate_image(image, angle)
                    future = loop.run_in_executor(self.executor, worker.recognize, rotated)
                    self.pool.track(worker, future)
                    # Cancelling the caller must not cancel the future: the
                    # thread keeps using the worker until it returns
                    text, confidence = await asyncio.shield(future)
                    attempts.append(text)
                    confidences.append(confidence)

                    if text.strip() and confidence > best_confidence:
                        best_confidence = confidence
                        best_text = text

                return OCRResult(
                    text=best_text.strip(),
                    confidence=float(np.mean(confidences)),
                    attempts=attempts
                )

            except Exception as e:
                logger.warning(f"Tesseract OCR failed: {e}")
                return OCRResult()

    @classmethod
    def rotation_labels(cls, attempt_count: int) -> List[str]:
        """Human-readable orientation for each attempt index."""
        return [
            cls.ROTATION_LABELS[cls.SPINE_ROTATION_ANGLES[i]]
            if i < len(cls.SPINE_ROTATION_ANGLES) else "other"
            for i in range(attempt_count)
        ]

    def close(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    async def __aenter__(self) -> "OCREngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _decode(image_data: bytes) -> np.ndarray:
        image = cv2.imdecode(np.frombuffer(image_data, dtype=np.uint8), cv2.IMREAD_COLOR)
        if image is None:
            raise ValueError("segment image could not be decoded")
        return image

    @staticmethod
    def _rotate_image(image: np.ndarray, angle: int) -> np.ndarray:
        """Rotate image by specified angle."""
        if angle == 90:
            return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
        elif angle == 180:
            return cv2.rotate(image, cv2.ROTATE_180)
        elif angle == 270:
            return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
        return image
