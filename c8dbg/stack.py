#!/usr/bin/env python3

"""
Stack Emulator

There is no specified location for the call stack in system RAM, and no stack
pointer register exposed to the running program, so we can simply wrap a list
to fully emulate it.  The stack pointer is the number of items held.

Both ends are guarded: pushing onto a full stack or popping an empty one is a
fatal StackError rather than silent wraparound.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class StackError(Exception):
    pass


class Stack:
    def __init__(self, size):
        self.items = []
        self.size = size

    def push(self, item):
        # Fetching the stack size with 'len' should be immediate, so no slow loop
        if len(self.items) >= self.size:
            raise StackError("Stack overflow (capacity {})".format(self.size))

        self.items.append(item)

    def pop(self):
        try:
            return self.items.pop()
        except IndexError:
            raise StackError("Stack underflow") from None

    def clear(self):
        self.items.clear()

    @property
    def pointer(self):
        return len(self.items)

    def get_items(self):
        # For debugging
        return self.items
