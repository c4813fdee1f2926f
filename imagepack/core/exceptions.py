# imagepack/core/exceptions.py
"""
Exception types shared across the service.

Per-file image failures never leave the derivative pipeline; they are turned
into error reports there. Only batch-level infrastructure faults propagate as
exceptions and end up in the global error handlers.
"""


class ImagepackError(Exception):
    """Base class for service errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BatchStorageError(ImagepackError):
    """Batch directory or archive could not be written"""
    pass


class ImageProcessingError(ImagepackError):
    """A single upload could not be decoded, resized or encoded"""
    pass
