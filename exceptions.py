class ReportError(Exception):
    """
    Base class for errors that abort a report submission.
    """


class ReportValidationError(ReportError):
    """
    The submission is missing a photo or carries unusable coordinates.
    """


class ImageError(ReportError):
    pass


class InvalidImageError(ImageError):
    """
    The uploaded bytes could not be decoded as an image.
    """


class StorageWriteError(ImageError):
    """
    The normalized image could not be written to the photo storage.
    """
