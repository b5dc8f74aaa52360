#!/usr/bin/env python3

"""
Text Renderer Plugin

Prints the screen to a plain text stream (standard output by default), one
line per row, with each lit pixel drawn as an 'X' followed by padding.  A new
frame is only written when something has changed since the last one.

If the stream is an interactive terminal, it is cleared before each frame so
the picture stays in place.  Otherwise frames are simply appended, which
makes the output easy to capture and compare.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import sys
from .r_null import Renderer as RendererBase

CLEAR_SCREEN = "\x1b[H\x1b[2J"


class Renderer(RendererBase):
    def __init__(self, scale=None, stream=None, **kwargs):
        if scale is None:
            scale = 2  # Default horizontal stretch if not supplied, or set to default

        self.stream = sys.stdout if stream is None else stream
        self.pixels = []
        super().__init__(scale, **kwargs)
        self.pixel_on = "X" + " " * (self.scale - 1)
        self.pixel_off = " " * self.scale

    def set_resolution(self, width, height):
        self.pixels = [bytearray(width) for _ in range(height)]
        super().set_resolution(width, height)

    def set_pixel(self, x, y, colour):
        self.pixels[y][x] = 1 if colour else 0

    def render(self):
        pixel_on = self.pixel_on
        pixel_off = self.pixel_off
        return "\n".join("".join(pixel_on if pixel else pixel_off for pixel in row) for row in self.pixels)

    def refresh_display(self, content_changed=False):
        if not content_changed:
            return

        if self.stream.isatty():
            self.stream.write(CLEAR_SCREEN)

        self.stream.write(self.render() + "\n")
        self.stream.flush()
