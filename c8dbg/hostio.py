#!/usr/bin/env python3

"""
Host I/O Functionality

Handles loading ROM binaries for later writing into RAM.  The size is checked
before anything is read, so an oversized ROM never gets near system memory.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from os import path
from .constants import MAX_PROGRAM_SIZE


class LoadError(Exception):
    pass


class Loader:
    def __init__(self, max_size=MAX_PROGRAM_SIZE):
        self.max_size = max_size

    def load_binary(self, filename):
        try:
            size = path.getsize(filename)

            if size > self.max_size:
                raise LoadError("ROM '{}' is too big ({} bytes, {} maximum)".format(filename, size, self.max_size))

            with open(filename, "rb") as f:
                return f.read()
        except OSError as err:
            raise LoadError("Failed to open ROM '{}': {}".format(filename, err.strerror or err)) from None
