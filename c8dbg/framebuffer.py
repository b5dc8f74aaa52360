#!/usr/bin/env python3

"""
Framebuffer Emulator

Pixels are written here, and are only pushed to the actual display (the host
rendering system) when the CPU asks for a refresh.  Programs for this system
cannot write directly into video RAM.  Instead, sprites are drawn to the
screen using an XOR method against a single monochrome plane.

A sprite's origin wraps around the screen, but the sprite itself is clipped at
the right and bottom edges rather than wrapping mid-sprite.

Collisions (where any pixel was set, but was unset by an XOR), are reported
back to the caller so the CPU can set the flag register.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import APP_NAME, VID_WIDTH, VID_HEIGHT
from .ram import RAM


class FramebufferError(Exception):
    pass


class Framebuffer():
    def __init__(self, renderer, vid_width=VID_WIDTH, vid_height=VID_HEIGHT):
        self.renderer = renderer
        self.vram = RAM()
        self.vid_width = 0
        self.vid_height = 0
        self.vid_size = 0
        self.changed = False
        self.resize_vid(vid_width, vid_height)
        self.report_perf()

    def resize_vid(self, vid_width, vid_height):
        if vid_width <= 0 or vid_height <= 0:
            raise FramebufferError("Invalid screen resolution {}x{}".format(vid_width, vid_height))

        self.vid_width = vid_width
        self.vid_height = vid_height
        self.vid_size = self.vid_width * self.vid_height
        self.vram.resize(self.vid_size)  # Update RAM size
        self.renderer.set_resolution(vid_width, vid_height)  # Update screen resolution
        self.changed = True

    def clear(self):
        self.vram.clear()

        for y in range(self.vid_height):
            for x in range(self.vid_width):
                self.renderer.set_pixel(x, y, 0)

        self.changed = True

    def get_pixel(self, x, y):
        return self.vram.read(y * self.vid_width + x)

    def xor_pixel(self, x, y):
        # Returns flagging any collision, or None if the pixel is off-screen

        if x >= self.vid_width or y >= self.vid_height:
            return None

        vram_loc = y * self.vid_width + x
        pixel = self.vram.read(vram_loc)
        new_pixel = pixel ^ 1
        self.vram.write(vram_loc, new_pixel)
        self.renderer.set_pixel(x, y, new_pixel)
        self.changed = True

        return pixel != 0

    def draw_sprite(self, x, y, sprite):
        # The sprite's start always wraps, but the rows and columns are trimmed at the bottom-right corner
        vid_width = self.vid_width
        vid_height = self.vid_height
        vx_pos = x % vid_width
        vy_pos = y % vid_height
        collided = False

        for row, spr_data in enumerate(sprite):
            scr_y = vy_pos + row

            if scr_y >= vid_height:
                break

            for col in range(8):
                scr_x = vx_pos + col

                if scr_x >= vid_width:
                    break

                if spr_data & (0x80 >> col) and self.xor_pixel(scr_x, scr_y):
                    # Don't stop drawing.  Set the flag, and never unset it for this sprite.
                    collided = True

        return collided

    def snapshot(self):
        # Full grid, one bytes object of 0/1 pixels per row
        vid_width = self.vid_width
        mem = self.vram.mem
        return [bytes(mem[y * vid_width:(y + 1) * vid_width]) for y in range(self.vid_height)]

    def refresh_display(self):
        self.renderer.refresh_display(self.changed)
        self.changed = False

    def report_perf(self, fps=0, ops=0):
        title = "{} - {} FPS, {} OPS".format(APP_NAME, fps, ops)
        self.renderer.set_title(title)
