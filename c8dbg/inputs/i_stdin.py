#!/usr/bin/env python3

"""
Standard Input Plugin

Pairs with the text renderer.  A plain input stream has no idea when a key is
'pressed' or 'released', so the polled keypad is never held.  When the program
waits for a key, a line is read and its first character is the key typed.
Blank lines are skipped.

This shares standard input with the debugger's command prompt, so in DEBUG
mode the next line typed answers whichever of the two is waiting.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import sys
from .i_null import Inputs as InputsBase


class Inputs(InputsBase):
    def __init__(self, keymap, renderer, stream=None):
        self.stream = sys.stdin if stream is None else stream
        super().__init__(keymap, renderer, force_lowercase=True)

    def read_keycode(self):
        while True:
            line = self.stream.readline()

            if line == "":
                return None  # End of input

            line = line.strip()

            if line:
                return ord(line[0])
