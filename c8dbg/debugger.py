#!/usr/bin/env python3

"""
CPU Debugger

In DEBUG mode this steps the CPU under operator control.  Before each
instruction it outputs:
    * All 16 of the [V] registers, starting with most significant (Vf) and
      reducing to least significant (V0)
    * I  - Index register
    * DT - Delay timer
    * ST - Sound timer
    * SP - Stack pointer
    * PC - Program counter
    * OP - OpCode number
    * IN - Decoded instruction
    * Stack contents, and a dump of all memory

After the instruction, any watched memory location that has changed is
reported.  The debugger then waits for a command on its input:

    m <addr> [<size>]  Dump memory (whole memory if addr is negative)
    b <addr>           Run until the program counter reaches addr.  At least
                       one instruction always runs first, so a breakpoint at
                       the current address means 'run until back here'
    w <addr>           Watch a memory location for changes
    s                  Stop the session
    n (or blank)       Execute the next instruction

If a crash occurs in either run mode, the same register and stack summary is
outputted to help find the cause.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import sys
from .constants import MEMORY_SIZE, MAX_WATCHPOINTS, DEFAULT_DUMP_SIZE
from .decoder import decode, disassemble

BYTES_PER_LINE = 16

# Session states
STATE_RUNNING_SILENT = "RUNNING-SILENT"
STATE_RUNNING_VERBOSE = "RUNNING-VERBOSE"
STATE_PAUSED = "PAUSED-AWAITING-COMMAND"
STATE_HALTED = "HALTED"


class DebuggerError(Exception):
    pass


class Watchpoint:
    def __init__(self, address, last_value):
        self.address = address
        self.last_value = last_value


class Debugger:
    def __init__(self, stream=None, command_stream=None, max_watchpoints=MAX_WATCHPOINTS):
        self.stream = sys.stderr if stream is None else stream
        self.command_stream = sys.stdin if command_stream is None else command_stream
        self.max_watchpoints = max_watchpoints
        self.watchpoints = []
        self.state = STATE_RUNNING_SILENT

        self.command_handlers = {
            "m": self._cmd_memory,
            "b": self._cmd_breakpoint,
            "w": self._cmd_watchpoint,
            "s": self._cmd_stop,
            "n": self._cmd_next
        }

    # Formatting

    def debug(self, cpu, pc, opcode, instruction, verbose=False):
        machine = cpu.machine
        debug_str = (
            "V: 0x" + ("{:02x}" * 16) +
            " I: 0x{:03x} DT: 0x{:02x} ST: 0x{:02x} SP: {:d} PC: 0x{:03x} OP: 0x{:04x} IN: {}"
        ).format(
            *[machine.v[reg_num] for reg_num in range(15, -1, -1)] +
            [machine.i, machine.dt, machine.st, machine.stack.pointer, pc, opcode, instruction]
        )

        if verbose:
            stack_items = machine.stack.get_items()
            stack_str = (" 0x{:03x}" * len(stack_items)).format(*stack_items)
            debug_str += "\nStack:{}".format(stack_str or " (Empty)")

        return debug_str

    def format_memory(self, ram, start, size):
        lines = []

        for row_start in range(start, start + size, BYTES_PER_LINE):
            row = ram.read_block(row_start, min(BYTES_PER_LINE, start + size - row_start))
            lines.append("0x{:03x}:".format(row_start) + (" {:02x}" * len(row)).format(*row))

        return "\n".join(lines)

    def upcoming(self, cpu):
        # The instruction about to run, without executing anything
        opcode = cpu.fetch()
        return opcode, disassemble(decode(opcode), cpu.quirks)

    def state_dump(self, cpu):
        machine = cpu.machine
        opcode, instruction = self.upcoming(cpu)
        return "\n".join((
            self.debug(cpu, machine.pc, opcode, instruction, verbose=True),
            "Memory:",
            self.format_memory(machine.ram, 0, MEMORY_SIZE)
        ))

    def crash_report(self, cpu):
        instruction = "???" if cpu.instruction is None else disassemble(cpu.instruction, cpu.quirks)
        return self.debug(cpu, cpu.debug_pc, cpu.opcode, instruction, verbose=True)

    def output(self, text):
        print(text, file=self.stream)

    # Watchpoints

    def add_watchpoint(self, machine, address):
        if not 0 <= address < MEMORY_SIZE:
            raise DebuggerError("Watchpoint address 0x{:x} is outside memory.".format(address))

        if len(self.watchpoints) >= self.max_watchpoints:
            raise DebuggerError("Too many watchpoints -- {} maximum.".format(self.max_watchpoints))

        self.watchpoints.append(Watchpoint(address, machine.ram.read(address)))
        return len(self.watchpoints) - 1

    def check_watchpoints(self, machine):
        for index, watchpoint in enumerate(self.watchpoints):
            value = machine.ram.read(watchpoint.address)

            if value != watchpoint.last_value:
                self.output(
                    "Watchpoint {} at 0x{:03x}: 0x{:02x} -> 0x{:02x}".format(
                        index, watchpoint.address, watchpoint.last_value, value
                    )
                )
                watchpoint.last_value = value

    # Session

    def run(self, cpu):
        self.state = STATE_RUNNING_VERBOSE

        while True:
            if self.state == STATE_RUNNING_VERBOSE:
                self.output(self.state_dump(cpu))
                self._cycle(cpu)
                cpu.refresh_framebuffer()

            if cpu.halted:
                self.state = STATE_HALTED

            if self.state == STATE_HALTED:
                break

            self.state = STATE_PAUSED
            self.handle_command(cpu, self.read_command())

    def _cycle(self, cpu):
        if cpu.inputs.process_messages(cpu.machine.keys):
            # The user closed the display
            cpu.halted = True
            return

        cpu.cycle()
        self.check_watchpoints(cpu.machine)

    def read_command(self):
        self.stream.write("> ")
        self.stream.flush()
        line = self.command_stream.readline()

        # Nothing more to read
        if line == "":
            return None

        return line

    def handle_command(self, cpu, line):
        if line is None:
            self.state = STATE_HALTED
            return

        tokens = line.split()

        if tokens:
            command, args = tokens[0], tokens[1:]
        else:
            command, args = "n", []

        handler = self.command_handlers.get(command)

        if handler is None:
            raise DebuggerError("Unknown debugger command: {}".format(line.strip()))

        handler(cpu, args)

    def _parse_number(self, command, token):
        try:
            return int(token, 0)
        except ValueError:
            raise DebuggerError("Bad number for '{}': {}".format(command, token)) from None

    def _check_arg_count(self, command, args, min_args, max_args):
        if not min_args <= len(args) <= max_args:
            raise DebuggerError("Wrong number of arguments for '{}'.".format(command))

    def _cmd_memory(self, cpu, args):
        self._check_arg_count("m", args, 1, 2)
        address = self._parse_number("m", args[0])
        ram = cpu.machine.ram

        if address < 0:
            self.output(self.format_memory(ram, 0, MEMORY_SIZE))
            return

        size = self._parse_number("m", args[1]) if len(args) > 1 else DEFAULT_DUMP_SIZE

        if size <= 0 or address + size > MEMORY_SIZE:
            raise DebuggerError(
                "Memory range 0x{:x} (size {}) is outside 0x000-0x{:03x}.".format(address, size, MEMORY_SIZE - 1)
            )

        self.output(self.format_memory(ram, address, size))

    def _cmd_breakpoint(self, cpu, args):
        self._check_arg_count("b", args, 1, 1)
        address = self._parse_number("b", args[0])

        if not 0 <= address < MEMORY_SIZE - 1:
            raise DebuggerError("Breakpoint address 0x{:x} is outside memory.".format(address))

        self.state = STATE_RUNNING_SILENT

        try:
            while True:
                self._cycle(cpu)

                if cpu.halted:
                    return

                if cpu.machine.pc == address:
                    break
        finally:
            # Show whatever was drawn, however the run ended
            cpu.refresh_framebuffer()

        self.output("Breakpoint reached at 0x{:03x}".format(address))
        self.state = STATE_PAUSED

    def _cmd_watchpoint(self, cpu, args):
        self._check_arg_count("w", args, 1, 1)
        address = self._parse_number("w", args[0])
        index = self.add_watchpoint(cpu.machine, address)
        self.output("Watchpoint {} set at 0x{:03x}".format(index, address))

    def _cmd_stop(self, cpu, args):  # pylint: disable=unused-argument
        self._check_arg_count("s", args, 0, 0)
        self.state = STATE_HALTED

    def _cmd_next(self, cpu, args):  # pylint: disable=unused-argument
        self._check_arg_count("n", args, 0, 0)
        self.state = STATE_RUNNING_VERBOSE
