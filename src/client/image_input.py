# src/client/image_input.py
"""
State of the photo input (camera capture or file upload).

The capture status is a single enum owned by ImageInput; the UI only reads it
and calls the transition methods, so capture, upload and clear can never leave
the input half-updated.
"""

import base64
import logging
from enum import Enum
from typing import Iterable, Optional


class CaptureStatus(str, Enum):
    IDLE = "idle"
    CAPTURED = "captured"
    ERROR = "error"


class ImageValidationError(ValueError):
    pass


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class ImageInput:
    """Holds the current photo as a data URL along with its capture status."""

    def __init__(self, allowed_types: Iterable[str] = ("image/jpeg", "image/png", "image/webp"),
                 max_upload_bytes: int = 10 * 1024 * 1024):
        self.allowed_types = set(allowed_types)
        self.max_upload_bytes = max_upload_bytes
        self.status = CaptureStatus.IDLE
        self.data_url: Optional[str] = None
        self.image_bytes: Optional[bytes] = None
        self.error_message: Optional[str] = None
        self.source_id: Optional[str] = None
        self._dismissed_id: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> "ImageInput":
        return cls(
            allowed_types=config.image_input.allowed_types,
            max_upload_bytes=int(config.image_input.max_upload_mb * 1024 * 1024),
        )

    def capture(self, data: bytes, mime_type: str = "image/jpeg", source_id: Optional[str] = None) -> CaptureStatus:
        """Stores a camera snapshot."""
        if not data:
            return self._fail("The camera returned an empty image. Please try again.")
        return self._accept(data, mime_type, source_id)

    def upload(self, data: bytes, mime_type: Optional[str], source_id: Optional[str] = None) -> CaptureStatus:
        """Stores an uploaded file after checking its type and size."""
        try:
            self.validate_upload(data, mime_type)
        except ImageValidationError as e:
            return self._fail(str(e))
        return self._accept(data, mime_type, source_id)

    def validate_upload(self, data: bytes, mime_type: Optional[str]) -> None:
        if mime_type not in self.allowed_types:
            allowed = ", ".join(sorted(self.allowed_types))
            raise ImageValidationError(f"Unsupported file type '{mime_type}'. Please upload one of: {allowed}.")
        if not data:
            raise ImageValidationError("The uploaded file is empty.")
        if len(data) > self.max_upload_bytes:
            raise ImageValidationError(
                f"The uploaded file is too large ({len(data) / 1024 / 1024:.1f} MB, "
                f"max {self.max_upload_bytes / 1024 / 1024:.0f} MB).")

    def is_new_source(self, source_id: Optional[str]) -> bool:
        """False for the widget value already stored or the one the user just cleared."""
        return source_id not in (self.source_id, self._dismissed_id)

    def clear(self) -> CaptureStatus:
        self._dismissed_id = self.source_id
        self.status = CaptureStatus.IDLE
        self.data_url = None
        self.image_bytes = None
        self.error_message = None
        self.source_id = None
        return self.status

    def _accept(self, data: bytes, mime_type: str, source_id: Optional[str]) -> CaptureStatus:
        self.status = CaptureStatus.CAPTURED
        self.data_url = to_data_url(data, mime_type)
        self.image_bytes = data
        self.error_message = None
        self.source_id = source_id
        logging.info(f"Image ready ({mime_type}, {len(data)} bytes).")
        return self.status

    def _fail(self, message: str) -> CaptureStatus:
        self.status = CaptureStatus.ERROR
        self.data_url = None
        self.image_bytes = None
        self.error_message = message
        self.source_id = None
        logging.warning(f"Image input rejected: {message}")
        return self.status
