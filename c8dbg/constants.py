#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from collections import namedtuple

# App identification
APP_NAME = "C8Dbg Emulator"
APP_VERSION = "1.0.0"
APP_COPYRIGHT = "Copyright (C) 2022 Gregory Maynard-Hoare, licensed under GNU Affero General Public License v3.0"
APP_INTRO = "{} V{} -- ".format(APP_NAME, APP_VERSION)

# Memory layout
MEMORY_SIZE = 0x1000
FONT_LOCATION = 0x000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START  # 3584 bytes
I_BITMASK = 0xFFF  # Index register and program counter only ever address 4K
STACK_SIZE = 16

# Display
VID_WIDTH = 64
VID_HEIGHT = 32

# Debugger
MAX_WATCHPOINTS = 16
DEFAULT_DUMP_SIZE = 16

# 5-byte glyphs for hex digits 0-F, stored from FONT_LOCATION
FONT = bytes((
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80   # F
))

# Default mappings for keys 0-F, later populated into a dictionary.  These are the COSMAC VIP hex keypad positions
# on a QWERTY keyboard (x 1 2 3 q w e a s d z c 4 r f v), and the keyscans and ASCII characters are the same codes
DEFAULT_KEYMAP = "120,49,50,51,113,119,101,97,115,100,122,99,52,114,102,118"

# Run modes
RUN_MODE_NORMAL = "NORMAL"
RUN_MODE_DEBUG = "DEBUG"
RUN_MODES = [RUN_MODE_NORMAL, RUN_MODE_DEBUG]

# Quirk profiles.
# shift          : Shift Vx in place, rather than copying Vy into Vx first.
# jump           : Bnnn jumps to nnn + Vx, rather than nnn + V0.
# index_overflow : Fx1E sets Vf when I carries out of 12 bits.
# load           : Fx55/Fx65 advance I past the 16 transferred registers.
QuirkProfile = namedtuple("QuirkProfile", ["name", "shift", "jump", "index_overflow", "load"])

INSTRUCTION_SET_SUPER = "SUPER"
INSTRUCTION_SET_COSMAC = "COSMAC"

INSTRUCTION_SETS = {
    INSTRUCTION_SET_SUPER:  QuirkProfile(INSTRUCTION_SET_SUPER, True, True, True, False),    # Super-CHIP / HP48
    INSTRUCTION_SET_COSMAC: QuirkProfile(INSTRUCTION_SET_COSMAC, False, False, False, True)  # Original COSMAC VIP
}
