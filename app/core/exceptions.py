"""
Error kinds raised by the enhancement, detection and video pipelines.

Validation problems (InvalidInput) carry a user-facing message. Processing
problems carry internal detail for the logs only; callers surface a short,
generic notice instead.
"""


class StudioError(Exception):
    """Base class for every error raised by the studio pipelines."""


class InvalidInput(StudioError, ValueError):
    """Missing or wrong-type image, or an unsupported MIME type."""


class UnreadableImage(StudioError):
    """Image metadata or dimensions could not be read."""


class TransformFailed(StudioError):
    """The raster pipeline could not decode, allocate or encode the image."""


class InferenceFailed(StudioError):
    """The detection model could not be loaded or failed to run."""


class SynthesisFailed(StudioError):
    """The video encoder could not be loaded or failed to encode."""


class ActionInProgress(StudioError):
    """The same action is already running for this session."""
