#!/usr/bin/env python3

__author__ = "Gregory Maynard-Hoare"
__copyright__ = "Copyright (C) 2024 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"
__version__ = "1.0.0"

import sys
from argparse import ArgumentParser
from c8dbg import main
from c8dbg.constants import DEFAULT_KEYMAP, INSTRUCTION_SETS, INSTRUCTION_SET_SUPER, RUN_MODES, RUN_MODE_NORMAL


class UsageParser(ArgumentParser):
    # Bad arguments show the usage and leave without starting anything, which is not an error
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(0, "{}: {}\n".format(self.prog, message))


def parse_args(argv=None):
    parser = UsageParser()
    parser.add_argument("filename", help="ROM to execute (normally ending in .ch8 or .c8)")
    parser.add_argument(
        "mode", nargs="?", choices=RUN_MODES, default=RUN_MODE_NORMAL,
        help="NORMAL runs the ROM, DEBUG steps through it with the interactive debugger (default NORMAL)"
    )
    parser.add_argument(
        "instruction_set", nargs="?", choices=list(INSTRUCTION_SETS.keys()), default=INSTRUCTION_SET_SUPER,
        help="set the shift, jump, index and load/store quirks for Super-CHIP or the COSMAC VIP (default SUPER)"
    )
    parser.add_argument(
        "-r", "--renderer", choices=["pygame", "text", "null"],
        help="set the rendering and input systems (pygame by default if available, text in DEBUG mode)"
    )
    parser.add_argument(
        "-s", "--scale", type=int,
        help="set the window width in PyGame mode (default 512), and characters per pixel in text mode (default 2)"
    )
    parser.add_argument(
        "-c", "--clock_speed", type=int,
        help="override the CPU speed in operations/second (default 1000, 0 = uncapped).  Ignored in DEBUG mode"
    )
    parser.add_argument(
        "-k", "--keymap", default=DEFAULT_KEYMAP,
        help="redefine the 16 keyscan codes (PyGame) or character numbers (text).  Separate each decimal with a comma"
    )
    parser.add_argument(
        "--pygame_palette",
        help="redefine the background and foreground colours for the PyGame renderer in hex, e.g. 222222,DDDDDD"
    )
    parser.add_argument(
        "--seed", type=int,
        help="seed the random number generator for a repeatable run (default: seeded from the clock)"
    )
    return parser.parse_args(argv)  # Calls sys.exit(0) after showing usage if args are incorrect


if __name__ == "__main__":
    args = vars(parse_args())
    # It is possible to start the emulator from a GUI by calling this with a dictionary
    sys.exit(main(args))
