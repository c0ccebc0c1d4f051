from __future__ import annotations


class PostprocessError(ValueError):
    """
    Base class for errors raised while turning raw detector output into detections.

    Subclasses `ValueError` so callers validating arguments with
    `except ValueError` keep catching these.
    """


class MalformedTensor(PostprocessError):
    """Raw output tensor has the wrong rank or row width."""


class ClassCatalogMismatch(PostprocessError):
    """Class catalog does not agree with the number of score columns."""


class InvalidThreshold(PostprocessError):
    """Confidence or NMS threshold outside [0, 1]."""
