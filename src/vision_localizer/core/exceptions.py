"""Custom exceptions for Vision Localizer."""


class VisionLocalizerError(Exception):
    """Base exception for all Vision Localizer errors."""

    pass


class LayoutError(VisionLocalizerError):
    """Field tag layout is missing or malformed."""

    def __init__(self, message: str = "Invalid field tag layout") -> None:
        self.message = message
        super().__init__(self.message)


class FrameSourceError(VisionLocalizerError):
    """A camera frame source failed to produce a frame."""

    def __init__(self, message: str = "Frame source error") -> None:
        self.message = message
        super().__init__(self.message)


class PoseSolveError(VisionLocalizerError):
    """PnP solve failed or returned no usable solution."""

    def __init__(self, message: str = "Pose solve failed") -> None:
        self.message = message
        super().__init__(self.message)
