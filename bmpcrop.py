from transitions import Machine
import argparse
import logging
import sys
import coloredlogs
from bitmap_helpers import image_helpers, crop_helpers
from bitmap_helpers.errors import BitmapError


class BitmapCropper(object):
    """
    Reads an 8bpp bitmap, crops it to its foreground and writes the result.

    The steps are driven by a state machine, so they can only happen in order: init -> loaded -> cropped -> saved.
    A step that fails leaves the machine where it was.
    """

    def __init__(self, input_path, output_path, log_level='INFO'):
        self._initialiseLogging(log_level)

        self.input_path = input_path
        self.output_path = output_path

        self.image = None
        self.cropped_image = None

        states = ['init', 'loaded', 'cropped', 'saved']

        transitions = [
            {'trigger': 'read_input', 'source': 'init', 'dest': 'loaded', 'before': self._read_input},
            {'trigger': 'crop_image', 'source': 'loaded', 'dest': 'cropped', 'before': self._crop_image},
            {'trigger': 'write_output', 'source': 'cropped', 'dest': 'saved', 'before': self._write_output}
        ]

        self.fsm = Machine(states=states, transitions=transitions, initial='init')

    def _initialiseLogging(self, log_level):
        logging.basicConfig(format='%(asctime)s.%(msecs)03d %(name)s %(levelname)s %(message)s', datefmt='%F %H:%M:%S',
                            level=log_level)
        self.logger = logging.getLogger("bmpcrop")
        coloredlogs.install(level=log_level, logger=self.logger)

    @property
    def state(self):
        return self.fsm.state

    def read_input(self):
        self.fsm.read_input()

    def crop_image(self):
        self.fsm.crop_image()

    def write_output(self):
        self.fsm.write_output()

    def run(self):
        """
        Read, crop and write in one go.

        :return: The cropped Image
        """
        self.read_input()
        self.crop_image()
        self.write_output()
        return self.cropped_image

    def _read_input(self):
        self.logger.info("Reading {}".format(self.input_path))
        self.image = image_helpers.read_bitmap(self.input_path)

    def _crop_image(self):
        self.logger.info("Cropping {}x{} image".format(self.image.width, self.image.height))
        self.cropped_image = crop_helpers.crop(self.image)

    def _write_output(self):
        self.logger.info("Writing {}".format(self.output_path))
        image_helpers.write_bitmap(self.cropped_image, self.output_path)


class _ArgumentParser(argparse.ArgumentParser):

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, "{}: error: {}\n".format(self.prog, message))


def main(argv=None):
    """
    Command line entry point.

    :param argv: Arguments without the program name, defaults to sys.argv[1:]
    :return: Process exit code
    """
    parser = _ArgumentParser(prog="bmpcrop",
                             description="Crop an 8bpp bitmap to the smallest rectangle around its foreground.")
    parser.add_argument("input", help="Input .bmp file")
    parser.add_argument("output", help="Output .bmp file")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity (default: WARNING)")

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code

    cropper = BitmapCropper(args.input, args.output, log_level=args.log_level)
    try:
        cropper.run()
    except BitmapError as e:
        print("Error - {}".format(e), file=sys.stderr)
        return 1

    print("Cropped image saved as: {}".format(args.output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
