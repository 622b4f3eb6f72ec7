"""Custom exceptions for zoning operations.

Every error here is fatal to the current image's invocation. A batch
driver may skip the failing image and continue with the next one, but
nothing is retried and no partial result is emitted.
"""


class ZoningError(Exception):
    """Base exception for all zoning errors."""

    def __init__(self, message: str, image_id: str | None = None) -> None:
        """Initialize zoning error with optional image context.

        Args:
            message: Human-readable error description.
            image_id: Identifier of the image whose invocation failed.
        """
        self.image_id = image_id
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with image context if available."""
        if self.image_id:
            return f"{self.message} (image: {self.image_id})"
        return self.message

    def attach_image(self, image_id: str) -> None:
        """Record the failing image after the error was raised."""
        self.image_id = image_id
        self.args = (self._format_message(),)


class MissingCalibrationError(ZoningError):
    """Raised when no usable physical pixel size is available.

    The margin distance cannot be converted into geometry units without a
    calibration, so no default is assumed. Non-positive or non-finite
    pixel sizes are reported the same way.
    """

    pass


class InsufficientAnnotationsError(ZoningError):
    """Raised when fewer than two annotations exist on the image."""

    def __init__(
        self,
        message: str,
        image_id: str | None = None,
        *,
        count: int,
    ) -> None:
        self.count = count
        super().__init__(message, image_id)

    def _format_message(self) -> str:
        parts = [f"count={self.count}"]
        if self.image_id:
            parts.insert(0, f"image={self.image_id}")
        return f"{self.message} ({', '.join(parts)})"


class MissingTumorAnnotationError(ZoningError):
    """Raised when no annotation carries the tumor label."""

    pass


class MissingTissueAnnotationError(ZoningError):
    """Raised when no annotation carries the tissue label."""

    pass


class DuplicateAnnotationError(ZoningError):
    """Raised in strict mode when a singleton label appears more than once."""

    def __init__(
        self,
        message: str,
        image_id: str | None = None,
        *,
        label: str,
        count: int,
    ) -> None:
        self.label = label
        self.count = count
        super().__init__(message, image_id)

    def _format_message(self) -> str:
        parts = [f"label={self.label!r}", f"count={self.count}"]
        if self.image_id:
            parts.insert(0, f"image={self.image_id}")
        return f"{self.message} ({', '.join(parts)})"


class InvalidGeometryError(ZoningError):
    """Raised when an input geometry is absent or not polygonal.

    This error is raised when:
    - The tumor or tissue geometry is None
    - An input geometry is not a Polygon or MultiPolygon
    - A candidate region has no geometry
    - The margin distance is negative or not finite
    """

    def __init__(
        self,
        message: str,
        image_id: str | None = None,
        *,
        role: str | None = None,
    ) -> None:
        self.role = role
        super().__init__(message, image_id)

    def _format_message(self) -> str:
        parts = []
        if self.image_id:
            parts.append(f"image={self.image_id}")
        if self.role is not None:
            parts.append(f"role={self.role}")
        if not parts:
            return self.message
        return f"{self.message} ({', '.join(parts)})"
