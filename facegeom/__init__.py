"""
Core package init for facegeom.

Makes the `facegeom` modules importable without requiring an editable install.
"""

__all__ = [
    "capture",
    "config",
    "errors",
    "exchange",
    "io_utils",
    "normalize",
    "recognition",
    "session",
    "types",
    "zones",
]
