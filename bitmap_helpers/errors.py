class BitmapError(Exception):
    """Base class for everything the bitmap helpers raise."""


class BitmapIOError(BitmapError):
    """The file could not be opened, or a read/write on the stream failed or came up short."""


class BitmapFormatError(BitmapError):
    """The bytes (or an in-memory image) break the 8bpp indexed bitmap layout."""


class EmptyCropError(BitmapError):
    """No foreground pixel was found, so there is no rectangle to crop to."""
