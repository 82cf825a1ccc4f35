"""
Error taxonomy for feature extraction, comparison and ranking.

Per-image errors (DecodeError, InvalidInput, NoFaceDetected) are skipped
by batch builds. SizeMismatch is raised by distance functions and caught
per record by the ranking engine. UnknownMethod is a configuration bug
and always propagates.
"""


class ImageMatchError(Exception):
    """Base class for all image_match errors."""


class DecodeError(ImageMatchError, IOError):
    """Image file is missing, corrupt, or unreadable."""


class InvalidInput(ImageMatchError, ValueError):
    """Wrong channel count, grid too small, or a zero-pixel region."""


class NoFaceDetected(ImageMatchError):
    """The face detector returned no regions for an image."""


class SizeMismatch(ImageMatchError, ValueError):
    """Compared vectors differ in length or layout."""


class UnknownMethod(ImageMatchError, ValueError):
    """Unrecognized extraction method or distance metric name."""
