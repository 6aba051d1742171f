from construct import \
    Struct, Const, Padding, Bytes, Array, Byte, Int16ul, Int32ul, Int32sl

FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
NUM_COLORS = 256
COLOR_TABLE_SIZE = 4 * NUM_COLORS
PIXEL_DATA_OFFSET = FILE_HEADER_SIZE + INFO_HEADER_SIZE + COLOR_TABLE_SIZE

BITS_PER_PIXEL = 8

# All integers are little-endian and nothing is aligned.

bmp_file_header = Struct(
    "magic" / Const(b"BM"),
    "size" / Int32ul,
    "reserved1" / Int16ul,
    "reserved2" / Int16ul,
    "off_bits" / Int32ul
)

bmp_info_header = Struct(
    "size" / Int32ul,
    # Signed; a negative height would mean top-down rows
    "width" / Int32sl,
    "height" / Int32sl,
    "planes" / Int16ul,
    "bit_count" / Int16ul,
    "compression" / Int32ul,
    "size_image" / Int32ul,
    "x_pixels_per_meter" / Int32sl,
    "y_pixels_per_meter" / Int32sl,
    "colors_used" / Int32ul,
    "colors_important" / Int32ul
)

bmp_color_entry = Struct(
    "blue" / Byte,
    "green" / Byte,
    "red" / Byte,
    "reserved" / Byte
)

# Always the full 256 entries, whatever colors_used says
bmp_color_table = Array(NUM_COLORS, bmp_color_entry)


def row_padding_bytes(width):
    """
    Number of zero bytes that follow each row so its on-disk length is a multiple of 4.

    :param width: Row width in pixels (one byte each)
    :return: 0, 1, 2 or 3
    """
    return (4 - width % 4) % 4


def bmp_pixel_array(width, height):
    """
    Build the codec for the pixel rows of a width x height image.

    Padding is skipped without being checked on parse, and written as zeros on build.

    :param width: Pixels per row
    :param height: Number of rows
    :return: A construct Array of row structs, each with a "pixels" field
    """
    bmp_pixel_row = Struct(
        "pixels" / Bytes(width),
        Padding(row_padding_bytes(width))
    )
    return Array(height, bmp_pixel_row)
