#!/usr/bin/env python3

"""
Machine State

Holds everything a running program can observe or change: system RAM, the V
registers, the index register, the program counter, the call stack, both
timers, the keypad and the screen.  Nothing in here executes instructions;
the CPU does that against one of these.

Keeping the state in an instance of its own (rather than module globals) means
any number of machines can exist side by side, which is handy for testing.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import FONT, FONT_LOCATION, MEMORY_SIZE, MAX_PROGRAM_SIZE, PROGRAM_START, STACK_SIZE
from .ram import RAM
from .stack import Stack


class MachineError(Exception):
    pass


class Machine:
    def __init__(self, framebuffer, quirks):
        self.framebuffer = framebuffer
        self.quirks = quirks  # Fixed for the lifetime of the machine
        self.ram = RAM()
        self.ram.resize(MEMORY_SIZE)
        self.stack = Stack(STACK_SIZE)
        self.reset()

    def reset(self):
        # Clear system RAM and write the font into it
        self.ram.clear()
        self.ram.write_block(FONT_LOCATION, FONT)

        # Bytearrays are mutable, so this should be fast when a register is updated
        self.v = memoryview(bytearray(16))
        self.i = 0  # Index register
        self.pc = PROGRAM_START
        self.stack.clear()

        self.dt = 0  # Delay timer
        self.st = 0  # Sound timer

        # Polled keypad, one byte per key 0-F (non-zero = held)
        self.keys = memoryview(bytearray(16))

        self.framebuffer.clear()

    def load_program(self, data):
        if len(data) > MAX_PROGRAM_SIZE:
            raise MachineError(
                "Program is {} bytes, but only {} bytes are available".format(len(data), MAX_PROGRAM_SIZE)
            )

        self.ram.write_block(PROGRAM_START, data)

    def tick_timers(self):
        # Both timers count down once per executed cycle, stopping at zero
        if self.dt > 0:
            self.dt -= 1

        if self.st > 0:
            self.st -= 1
