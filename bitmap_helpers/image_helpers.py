import io
import logging
import numpy as np
from construct import Container, ConstructError, StreamError
from bitmap_helpers import bmp_codecs
from bitmap_helpers.errors import BitmapIOError, BitmapFormatError

logger = logging.getLogger("bitmap_helpers.image")


def _strip_private(container):
    # construct leaves _io and friends on parsed containers
    return Container({k: v for k, v in container.items() if not k.startswith("_")})


class ColorTable(object):
    """
    The 256-entry palette of an 8bpp bitmap. Each entry has blue, green, red and reserved bytes.
    """

    def __init__(self, entries):
        entries = [_strip_private(Container(entry)) for entry in entries]
        if len(entries) != bmp_codecs.NUM_COLORS:
            raise BitmapFormatError("Colour table must have {} entries, got {}".format(
                bmp_codecs.NUM_COLORS, len(entries)))
        self._entries = entries

    @classmethod
    def grayscale(cls):
        return cls([Container(blue=i, green=i, red=i, reserved=0) for i in range(bmp_codecs.NUM_COLORS)])

    def __getitem__(self, index):
        if not 0 <= index < bmp_codecs.NUM_COLORS:
            raise IndexError("Colour index {} out of range".format(index))
        return self._entries[index]

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __eq__(self, other):
        if not isinstance(other, ColorTable):
            return NotImplemented
        return self._entries == other._entries

    def rgb(self, index):
        entry = self[index]
        return entry.red, entry.green, entry.blue


class Image(object):
    """
    An 8bpp indexed bitmap held entirely in memory.

    The pixel grid is a uint8 numpy array indexed [row][column], rows in the order they are stored on disk.
    Width, height and row padding are always read from the info header, so they can't disagree.
    """

    def __init__(self, file_header, info_header, color_table, pixel_array):
        self.file_header = file_header
        self.info_header = info_header
        self.color_table = color_table
        self.pixel_array = pixel_array

    @property
    def width(self):
        return self.info_header.width

    @property
    def height(self):
        return self.info_header.height

    @property
    def row_padding_bytes(self):
        return bmp_codecs.row_padding_bytes(self.width)

    def pixel(self, row, col):
        return int(self.pixel_array[row, col])

    def rgb(self, row, col):
        return self.color_table.rgb(self.pixel(row, col))

    def validate(self):
        """
        Check that the pixel grid matches the dimensions in the info header.

        :return: None, raises BitmapFormatError if the image is inconsistent
        """
        if self.width < 0 or self.height < 0:
            raise BitmapFormatError("Negative dimensions {}x{}".format(self.width, self.height))
        if self.pixel_array.dtype != np.uint8:
            raise BitmapFormatError("Pixel array must be uint8, got {}".format(self.pixel_array.dtype))
        if self.pixel_array.shape != (self.height, self.width):
            raise BitmapFormatError("Pixel array is {} but header says {}x{}".format(
                self.pixel_array.shape, self.height, self.width))
        if len(self.color_table) != bmp_codecs.NUM_COLORS:
            raise BitmapFormatError("Colour table has {} entries".format(len(self.color_table)))

    def __eq__(self, other):
        if not isinstance(other, Image):
            return NotImplemented
        return (self.file_header == other.file_header and
                self.info_header == other.info_header and
                self.color_table == other.color_table and
                np.array_equal(self.pixel_array, other.pixel_array))

    def __repr__(self):
        return "<Image {}x{}>".format(self.width, self.height)


def new_image(width, height, pixels=None, color_table=None, fill=0):
    """
    Create a fully populated image with consistent headers.

    :param width: Width in pixels
    :param height: Height in pixels
    :param pixels: Optional nested sequence (or array) of palette indices, shape (height, width)
    :param color_table: Optional ColorTable, defaults to a grey ramp
    :param fill: Palette index used when pixels is not given
    :return: An Image
    """
    if width < 0 or height < 0:
        raise BitmapFormatError("Negative dimensions {}x{}".format(width, height))

    if pixels is None:
        pixel_array = np.full((height, width), fill, dtype=np.uint8)
    else:
        try:
            values = np.asarray(pixels)
        except ValueError as err:
            raise BitmapFormatError("Pixels must be a rectangular grid: {}".format(err)) from err
        if values.dtype.kind not in "iu":
            raise BitmapFormatError("Pixel values must be integers, got {}".format(values.dtype))
        if values.size and (values.min() < 0 or values.max() > 255):
            raise BitmapFormatError("Pixel values must be palette indices 0-255")
        pixel_array = values.astype(np.uint8)
        if pixel_array.shape != (height, width):
            raise BitmapFormatError("Pixels have shape {}, expected ({}, {})".format(
                pixel_array.shape, height, width))

    image_size = (width + bmp_codecs.row_padding_bytes(width)) * height

    file_header = Container(
        magic=b"BM",
        size=bmp_codecs.PIXEL_DATA_OFFSET + image_size,
        reserved1=0,
        reserved2=0,
        off_bits=bmp_codecs.PIXEL_DATA_OFFSET
    )
    info_header = Container(
        size=bmp_codecs.INFO_HEADER_SIZE,
        width=width,
        height=height,
        planes=1,
        bit_count=bmp_codecs.BITS_PER_PIXEL,
        compression=0,
        size_image=image_size,
        x_pixels_per_meter=0,
        y_pixels_per_meter=0,
        colors_used=bmp_codecs.NUM_COLORS,
        colors_important=0
    )

    if color_table is None:
        color_table = ColorTable.grayscale()

    return Image(file_header, info_header, color_table, pixel_array)


def decode(stream):
    """
    Decode an 8bpp bitmap from a binary stream.

    :param stream: A readable binary file-like object positioned at the "BM" tag
    :return: An Image
    """
    try:
        file_header = _strip_private(bmp_codecs.bmp_file_header.parse_stream(stream))
        logger.debug("File header: {}".format(dict(file_header)))

        info_header = _strip_private(bmp_codecs.bmp_info_header.parse_stream(stream))
        logger.debug("Info header: {}".format(dict(info_header)))
        check_info_header(info_header)

        color_table = ColorTable(bmp_codecs.bmp_color_table.parse_stream(stream))

        rows = bmp_codecs.bmp_pixel_array(info_header.width, info_header.height).parse_stream(stream)

    except StreamError as err:
        raise BitmapIOError("Stream ended before the bitmap was complete: {}".format(err)) from err
    except ConstructError as err:
        raise BitmapFormatError("Unrecognized file format: {}".format(err)) from err

    pixel_array = np.frombuffer(b"".join(row.pixels for row in rows), dtype=np.uint8)
    pixel_array = pixel_array.reshape(info_header.height, info_header.width).copy()

    return Image(file_header, info_header, color_table, pixel_array)


def check_info_header(info_header):
    """
    Reject info headers this codec cannot handle.

    :param info_header: Parsed info header container
    :return: None
    """
    if info_header.bit_count != bmp_codecs.BITS_PER_PIXEL:
        raise BitmapFormatError("Incorrect bits per pixel: {} (only {} is supported)".format(
            info_header.bit_count, bmp_codecs.BITS_PER_PIXEL))
    if info_header.compression != 0:
        raise BitmapFormatError("Compressed bitmaps are not supported (method {})".format(
            info_header.compression))
    if info_header.planes != 1:
        raise BitmapFormatError("Planes must be 1, got {}".format(info_header.planes))
    if info_header.width < 0 or info_header.height < 0:
        raise BitmapFormatError("Negative dimensions {}x{} are not supported".format(
            info_header.width, info_header.height))
    if (info_header.width == 0) != (info_header.height == 0):
        raise BitmapFormatError("Degenerate dimensions {}x{}".format(info_header.width, info_header.height))


def encode(image, stream):
    """
    Encode an image to a binary stream, padding each row with zeros to a multiple of 4 bytes.

    :param image: The Image to write
    :param stream: A writable binary file-like object
    :return: None
    """
    image.validate()

    try:
        data = b"".join([
            bmp_codecs.bmp_file_header.build(image.file_header),
            bmp_codecs.bmp_info_header.build(image.info_header),
            bmp_codecs.bmp_color_table.build(list(image.color_table)),
            bmp_codecs.bmp_pixel_array(image.width, image.height).build(
                [Container(pixels=row.tobytes()) for row in image.pixel_array]
            )
        ])
    except ConstructError as err:
        raise BitmapFormatError("Image can't be encoded: {}".format(err)) from err

    try:
        stream.write(data)
    except OSError as err:
        raise BitmapIOError("Write failed: {}".format(err)) from err


def decode_bytes(data):
    return decode(io.BytesIO(data))


def encode_bytes(image):
    stream = io.BytesIO()
    encode(image, stream)
    return stream.getvalue()


def read_bitmap(path):
    """
    Read a bitmap file.

    :param path: Path of the input file
    :return: An Image
    """
    try:
        f = open(path, "rb")
    except OSError as err:
        raise BitmapIOError("Unable to open input file {}: {}".format(path, err)) from err

    with f:
        try:
            image = decode(f)
        except OSError as err:
            raise BitmapIOError("Unable to read input file {}: {}".format(path, err)) from err

    logger.info("File read: {} ({}x{})".format(path, image.width, image.height))
    return image


def write_bitmap(image, path):
    """
    Write an image to a bitmap file.

    :param image: The Image to write
    :param path: Path of the output file
    :return: None
    """
    data = encode_bytes(image)

    try:
        f = open(path, "wb")
    except OSError as err:
        raise BitmapIOError("Unable to open output file {}: {}".format(path, err)) from err

    with f:
        try:
            f.write(data)
        except OSError as err:
            raise BitmapIOError("Unable to write output file {}: {}".format(path, err)) from err

    logger.info("File created: {} ({}x{})".format(path, image.width, image.height))
