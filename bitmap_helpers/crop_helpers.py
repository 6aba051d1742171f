import logging
from collections import namedtuple

import numpy as np
from construct import Container
from bitmap_helpers import bmp_codecs
from bitmap_helpers.errors import EmptyCropError
from bitmap_helpers.image_helpers import Image

logger = logging.getLogger("bitmap_helpers.crop")

# Inclusive on all four sides
CropBounds = namedtuple("CropBounds", ["y_lower", "x_lower", "y_upper", "x_upper"])


def find_crop_bounds(image):
    """
    Find the smallest rectangle holding every foreground pixel.

    The lower bounds treat the colour at (0, 0) as background, the upper bounds the colour at
    (height - 1, width - 1). The two can differ; each pass only searches what the earlier passes left.

    :param image: A decoded Image
    :return: CropBounds
    """
    pixels = image.pixel_array
    height, width = pixels.shape

    if height == 0 or width == 0:
        raise EmptyCropError("Image has no pixels ({}x{})".format(width, height))

    bkg_color_index = pixels[0, 0]

    # Rows top to bottom, columns left to right
    rows = np.flatnonzero((pixels != bkg_color_index).any(axis=1))
    if rows.size == 0:
        raise EmptyCropError("Every pixel matches the background colour index {}".format(bkg_color_index))
    y_lower = int(rows[0])

    # Columns left to right, rows from y_lower down
    cols = np.flatnonzero((pixels[y_lower:, :] != bkg_color_index).any(axis=0))
    x_lower = int(cols[0])

    bkg_color_index = pixels[height - 1, width - 1]

    # Rows bottom to top down to y_lower, columns from x_lower
    rows = np.flatnonzero((pixels[y_lower:, x_lower:] != bkg_color_index).any(axis=1))
    if rows.size == 0:
        raise EmptyCropError("Nothing below row {} and right of column {} differs from colour index {}".format(
            y_lower, x_lower, bkg_color_index))
    y_upper = y_lower + int(rows[-1])

    # Columns right to left down to x_lower, rows y_lower..y_upper
    cols = np.flatnonzero((pixels[y_lower:y_upper + 1, x_lower:] != bkg_color_index).any(axis=0))
    x_upper = x_lower + int(cols[-1])

    bounds = CropBounds(y_lower, x_lower, y_upper, x_upper)
    logger.debug("Crop bounds: {}".format(bounds))
    return bounds


def crop(image):
    """
    Create a new image holding only the foreground rectangle of the given one.

    The source image is left untouched. Its colour table is shared, the pixels are copied.

    :param image: A decoded Image
    :return: A new Image
    """
    bounds = find_crop_bounds(image)

    file_header = Container(image.file_header)
    info_header = Container(image.info_header)

    info_header["height"] = bounds.y_upper + 1 - bounds.y_lower
    info_header["width"] = bounds.x_upper + 1 - bounds.x_lower
    num_padding = bmp_codecs.row_padding_bytes(info_header.width)
    file_header["off_bits"] = bmp_codecs.PIXEL_DATA_OFFSET
    file_header["size"] = file_header.off_bits + (info_header.width + num_padding) * info_header.height

    pixel_array = image.pixel_array[bounds.y_lower:bounds.y_upper + 1, bounds.x_lower:bounds.x_upper + 1].copy()

    cropped = Image(file_header, info_header, image.color_table, pixel_array)
    logger.info("Image cropped from {}x{} to {}x{}".format(
        image.width, image.height, cropped.width, cropped.height))
    return cropped
