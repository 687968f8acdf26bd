"""
Exception types for ShelfReader.

Only fatal conditions are exceptions. Per-segment and recognition faults are
recovered locally and surface as diagnostic notes instead.
"""


class ShelfReaderError(Exception):
    """Base exception for ShelfReader errors."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ImageTooLargeError(ShelfReaderError):
    """Decoded image exceeds the configured pixel budget."""

    def __init__(self, pixel_count: int, max_pixels: int):
        self.pixel_count = pixel_count
        self.max_pixels = max_pixels
        super().__init__(
            message=(
                f"Uploaded image has {pixel_count:,} pixels which exceeds "
                f"the configured limit of {max_pixels:,} pixels."
            ),
            code="IMAGE_TOO_LARGE",
        )


class ConfigurationError(ShelfReaderError):
    """Settings failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            message="Invalid configuration: " + "; ".join(self.errors),
            code="CONFIGURATION_ERROR",
        )
