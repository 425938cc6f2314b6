"""Exception types raised by the facegeom core."""

from __future__ import annotations


class FaceGeomError(Exception):
    """Base class for recoverable facegeom failures."""


class DimensionMismatchError(FaceGeomError, ValueError):
    """Two feature (or weight) vectors of unequal length were compared."""


class CaptureBusyError(FaceGeomError, RuntimeError):
    """A capture was started while another one is still running."""


class EmptyCaptureError(FaceGeomError, RuntimeError):
    """A capture window closed without observing a single face."""


class NoPrototypesError(FaceGeomError, RuntimeError):
    """An operation needs reference prototypes but the store is empty."""


class ImportFormatError(FaceGeomError, ValueError):
    """An exchanged prototype payload does not have the expected shape."""
