#!/usr/bin/env python3

"""
Null Input Plugin

Serves as a base class for other Input plugins.  Can be used on its own if zero
input functionality is required: no key is ever held, and waiting for a key
reports that there is nothing to wait for.

The keymap is a comma-separated list of 16 decimal codes, one for each keypad
key 0-F in order.  What the codes mean depends on the plugin (characters for
text input, keyscans for PyGame).
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class InputsError(Exception):
    pass


class Inputs:
    def __init__(self, keymap, renderer, force_lowercase=False):
        self.keymap_dict = {}
        self.renderer = renderer
        self.force_lowercase = force_lowercase
        keymap_split = keymap.split(",")

        if len(keymap_split) != 0x10:
            raise InputsError("Incorrect number of keys defined -- 16 required.  Use commas to split numbers")

        for key_num, key_defined in enumerate(keymap_split):
            try:
                key_defined_ord = int(key_defined)
            except ValueError:
                raise InputsError("Defined keys are not all integer values") from None

            if force_lowercase:
                # If we are working with characters rather than keyscan codes, we should convert to lowercase
                key_defined_ord = ord(chr(key_defined_ord).lower())

            if key_defined_ord in self.keymap_dict:
                raise InputsError("Duplicate keys defined")

            self.keymap_dict[key_defined_ord] = key_num

    def process_messages(self, keys):  # pylint: disable=unused-argument
        return False  # Don't exit the program

    def read_keycode(self):
        return None  # Nothing will ever be pressed

    def map_keycode(self, code):
        if self.force_lowercase:
            code = ord(chr(code).lower())

        return self.keymap_dict.get(code)

    def shutdown(self):
        pass
