#!/usr/bin/env python3

"""
CPU Emulator (CHIP-8, COSMAC VIP and Super-CHIP instruction sets)

Like a real computer, this is where most of the processing happens.  Each
cycle fetches a two-byte opcode at the program counter, decodes it, executes
it against the machine state, and then counts both timers down by one.

Instructions are looked up in a table keyed by the opcode with its operands
masked out (see decoder.dispatch_key), so there is a single place where an
unknown opcode is caught.  The two instruction sets differ in four families:
shifts, jump with offset, add to index, and block load/store.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from time import perf_counter, time_ns
from random import Random
from .constants import I_BITMASK
from .decoder import decode, dispatch_key

CPU_ENDIAN = "big"   # CHIP-8 is big-endian
DISPLAY_FREQ = 60.0  # 60Hz emulated display refresh
DISPLAY_INTERVAL = 1.0 / DISPLAY_FREQ


class CPUError(Exception):
    pass


class CPU:
    def __init__(self, machine, inputs, clock_speed=None, seed=None):
        self.machine = machine
        self.framebuffer = machine.framebuffer
        self.inputs = inputs
        self.quirks = machine.quirks

        # Seeded once, from the clock unless a repeatable run was asked for
        self.random = Random(time_ns() if seed is None else seed)

        # No clock speed (or 0) runs uncapped
        self.core_interval = None if not clock_speed or clock_speed <= 0 else 1.0 / clock_speed

        # Define instruction pointers.
        # n = Nibble
        # kk = Byte
        # nnn = address
        # x/y = register (0-15)
        self.instructions = {
            # Instructions beginning with nibble 0x0, exact match
            0x0000: self._0000,
            0x00E0: self._00E0,
            0x00EE: self._00EE,
            # Instructions identified by their first nibble
            0x1000: self._1nnn,
            0x2000: self._2nnn,
            0x3000: self._3xkk,
            0x4000: self._4xkk,
            0x6000: self._6xkk,
            0x7000: self._7xkk,
            0xA000: self._Annn,
            0xB000: self._Bnnn,
            0xC000: self._Cxkk,
            0xD000: self._Dxyn,
            # Instructions beginning with nibble 0x5/0x8/0x9, bitmask 0xF00F
            0x5000: self._5xy0,
            0x8000: self._8xy0,
            0x8001: self._8xy1,
            0x8002: self._8xy2,
            0x8003: self._8xy3,
            0x8004: self._8xy4,
            0x8005: self._8xy5,
            0x8006: self._8xy6,
            0x8007: self._8xy7,
            0x800E: self._8xyE,
            0x9000: self._9xy0,
            # Instructions beginning with nibble 0xE/0xF, bitmask 0xF0FF
            0xE09E: self._Ex9E,
            0xE0A1: self._ExA1,
            0xF007: self._Fx07,
            0xF00A: self._Fx0A,
            0xF015: self._Fx15,
            0xF018: self._Fx18,
            0xF01E: self._Fx1E,
            0xF029: self._Fx29,
            0xF033: self._Fx33,
            0xF055: self._Fx55,
            0xF065: self._Fx65
        }

        # Current opcode and the address it was fetched from, kept for debugging
        self.opcode = 0
        self.debug_pc = machine.pc
        self.instruction = None
        self.halted = False

        # Performance-related vars
        self.next_display_update_time = 0
        self.perf_counter_fps = 0
        self.perf_counter_ops = 0
        self.next_perf_report_time = 0

    def run(self):
        while not self.halted:
            this_time = perf_counter()  # Do this first for maximum precision

            # Performance counters
            if this_time >= self.next_perf_report_time:
                self.next_perf_report_time = int(this_time) + 1.0
                # Reporting the performance should be done before a refresh, as refreshing will likely show the report
                self.framebuffer.report_perf(self.perf_counter_fps, self.perf_counter_ops)
                self.perf_counter_ops = 0
                self.perf_counter_fps = 0

            # Prevent unnecessary display rendering in excess of host frame rate
            if this_time >= self.next_display_update_time:
                if self.inputs.process_messages(self.machine.keys):  # Process inputs at 60Hz too, to avoid slowdown
                    break
                self.next_display_update_time = this_time + DISPLAY_INTERVAL
                self.refresh_framebuffer()
                self.perf_counter_fps += 1

            self.cycle()

            if self.core_interval is not None:
                # Wait for next CPU instruction.  Do this last for maximum precision (takes into account time spent on
                # this instruction)
                next_time = this_time + self.core_interval

                while perf_counter() < next_time:  # Unfortunately we have to do this to get the timing right
                    pass

            self.perf_counter_ops += 1

        # Show the final frame, whichever way the loop ended
        self.refresh_framebuffer()

    def cycle(self):
        machine = self.machine

        # Keep track of the program counter before altering it in any way for debugging purposes
        self.debug_pc = machine.pc  # Do this all the time in case there is a crash
        self.opcode = self.fetch()
        self.inc_pc()  # Program counter updates after fetch, but before execute
        self.instruction = decode(self.opcode)
        self.execute(self.instruction)

        # Timers are tied to instruction count, not wall-clock time
        machine.tick_timers()

    def fetch(self):
        ram = self.machine.ram
        pc = self.machine.pc
        return int.from_bytes(bytes((ram.read(pc), ram.read((pc + 1) & I_BITMASK))), CPU_ENDIAN, signed=False)

    def execute(self, instruction):
        handler = self.instructions.get(dispatch_key(instruction))

        if handler is None:
            self._opcode_unsupported(instruction)

        handler(instruction)

    def refresh_framebuffer(self):
        # Render pending screen updates.  Should be called whenever there will be a pause, a quit, or the display
        # refresh interval expires.
        self.framebuffer.refresh_display()

    def inc_pc(self):
        self.machine.pc = (self.machine.pc + 2) & I_BITMASK

    def _opcode_unsupported(self, instruction):
        raise CPUError(
            "Opcode 0x{:04x} at address 0x{:03x} is not recognised.".format(instruction.opcode, self.debug_pc)
        ) from None

    def _skip(self):
        self.inc_pc()

    def _0000(self, _):  # HALT
        self.halted = True

    def _00E0(self, _):  # CLS
        self.framebuffer.clear()

    def _00EE(self, _):  # RET
        self.machine.pc = self.machine.stack.pop()

    def _1nnn(self, ins):  # JP addr
        self.machine.pc = ins.addr

    def _2nnn(self, ins):  # CALL addr
        machine = self.machine
        machine.stack.push(machine.pc)
        machine.pc = ins.addr

    def _3xkk(self, ins):  # SE Vx, byte
        if self.machine.v[ins.x] == ins.byte:
            self._skip()

    def _4xkk(self, ins):  # SNE Vx, byte
        if self.machine.v[ins.x] != ins.byte:
            self._skip()

    def _5xy0(self, ins):  # SE Vx, Vy
        v = self.machine.v

        if v[ins.x] == v[ins.y]:
            self._skip()

    def _6xkk(self, ins):  # LD Vx, byte
        self.machine.v[ins.x] = ins.byte

    def _7xkk(self, ins):  # ADD Vx, byte
        v = self.machine.v
        v[ins.x] = (v[ins.x] + ins.byte) & 0xFF  # No carry flag

    def _8xy0(self, ins):  # LD Vx, Vy
        v = self.machine.v
        v[ins.x] = v[ins.y]

    def _8xy1(self, ins):  # OR Vx, Vy
        v = self.machine.v
        v[ins.x] |= v[ins.y]

    def _8xy2(self, ins):  # AND Vx, Vy
        v = self.machine.v
        v[ins.x] &= v[ins.y]

    def _8xy3(self, ins):  # XOR Vx, Vy
        v = self.machine.v
        v[ins.x] ^= v[ins.y]

    def _8xy4(self, ins):  # ADD Vx, Vy
        v = self.machine.v
        val = v[ins.x] + v[ins.y]
        v[ins.x] = val & 0xFF
        v[0xF] = int(val > 0xFF)  # Vf is set when carrying

    def _post_8xy5_8xy7(self, ins, val):  # Post-SUB/SUBN
        v = self.machine.v
        v[ins.x] = val & 0xFF
        # Vf is set when NOT borrowing, and this should happen AFTER Vx is set, as sometimes VF is specified in the
        # parameters.
        v[0xF] = int(val >= 0)

    def _8xy5(self, ins):  # SUB Vx, Vy
        v = self.machine.v
        self._post_8xy5_8xy7(ins, v[ins.x] - v[ins.y])

    def _8xy6(self, ins):  # SHR Vx {, Vy}
        # On Super-CHIP, Vx is used.  On the COSMAC VIP, Vy is copied in first.
        v = self.machine.v
        val = v[ins.x if self.quirks.shift else ins.y]
        v[ins.x] = val >> 1
        v[0xF] = val & 1

    def _8xy7(self, ins):  # SUBN Vx, Vy
        v = self.machine.v
        self._post_8xy5_8xy7(ins, v[ins.y] - v[ins.x])

    def _8xyE(self, ins):  # SHL Vx {, Vy}
        # On Super-CHIP, Vx is used.  On the COSMAC VIP, Vy is copied in first.
        v = self.machine.v
        val = v[ins.x if self.quirks.shift else ins.y]
        v[ins.x] = (val << 1) & 0xFF
        v[0xF] = val >> 7

    def _9xy0(self, ins):  # SNE Vx, Vy
        v = self.machine.v

        if v[ins.x] != v[ins.y]:
            self._skip()

    def _Annn(self, ins):  # LD I, addr
        self.machine.i = ins.addr

    def _Bnnn(self, ins):  # JP V0, addr
        # This is a nasty quirk which breaks lots of games if set incorrectly.  Super-CHIP reads the register named
        # by the high nibble of the address instead of V0.
        machine = self.machine
        vr = ins.x if self.quirks.jump else 0
        machine.pc = (machine.v[vr] + ins.addr) & I_BITMASK

    def _Cxkk(self, ins):  # RND Vx, byte
        # The ANDing here is intentional.  This is not a random number between 0 and 'byte' inclusive.
        self.machine.v[ins.x] = self.random.randint(0, 0xFF) & ins.byte

    def _Dxyn(self, ins):  # DRW Vx, Vy, nibble
        machine = self.machine
        ram = machine.ram
        v = machine.v
        i = machine.i

        # Read the origin before Vf is cleared, in case Vf is one of the operands
        vx_pos = v[ins.x]
        vy_pos = v[ins.y]
        sprite = bytes(ram.read((i + row) & I_BITMASK) for row in range(ins.nibble))

        v[0xF] = 0
        v[0xF] = int(self.framebuffer.draw_sprite(vx_pos, vy_pos, sprite))

    def _Ex9E(self, ins):  # SKP Vx
        machine = self.machine
        key = machine.v[ins.x]

        # Registers can hold values past the end of the keypad.  Those keys are never held.
        if key < 0x10 and machine.keys[key]:
            self._skip()

    def _ExA1(self, ins):  # SKNP Vx
        machine = self.machine
        key = machine.v[ins.x]

        if key < 0x10 and not machine.keys[key]:
            self._skip()

    def _Fx07(self, ins):  # LD Vx, DT
        machine = self.machine
        machine.v[ins.x] = machine.dt

    def _Fx0A(self, ins):  # LD Vx, K
        # Blocks the whole machine until the input device hands over a key
        code = self.inputs.read_keycode()

        if code is None:
            # Input has gone away (end of file or window closed), so there is nothing left to wait for
            self.halted = True
            return

        key = self.inputs.map_keycode(code)

        if key is None:
            raise CPUError("Key code {} (0x{:02x}) is not mapped to the keypad.".format(code, code))

        self.machine.v[ins.x] = key

    def _Fx15(self, ins):  # LD DT, Vx
        machine = self.machine
        machine.dt = machine.v[ins.x]

    def _Fx18(self, ins):  # LD ST, Vx
        machine = self.machine
        machine.st = machine.v[ins.x]

    def _Fx1E(self, ins):  # ADD I, Vx
        machine = self.machine
        val = machine.i + machine.v[ins.x]
        machine.i = val & I_BITMASK

        # Super-CHIP (and the Amiga interpreter) flag a carry out of the 12-bit address space
        if self.quirks.index_overflow:
            machine.v[0xF] = int(val > I_BITMASK)

    def _Fx29(self, ins):  # LD F, Vx
        machine = self.machine
        machine.i = (machine.v[ins.x] & 0xF) * 5

    def _Fx33(self, ins):  # LD B, Vx
        machine = self.machine
        val = machine.v[ins.x]
        i = machine.i
        machine.ram.write(i, val // 100)                          # Most-significant digit
        machine.ram.write((i + 1) & I_BITMASK, (val // 10) % 10)  # Middle digit
        machine.ram.write((i + 2) & I_BITMASK, val % 10)          # Least-significant digit

    def _post_Fx55_Fx65(self):
        if self.quirks.load:
            machine = self.machine
            machine.i = (machine.i + 0x10) & I_BITMASK

    def _Fx55(self, _):  # LD [I], Vx
        # All 16 registers are transferred, whatever x is
        machine = self.machine
        i = machine.i

        for reg in range(0x10):
            machine.ram.write((i + reg) & I_BITMASK, machine.v[reg])

        self._post_Fx55_Fx65()

    def _Fx65(self, _):  # LD Vx, [I]
        machine = self.machine
        i = machine.i

        for reg in range(0x10):
            machine.v[reg] = machine.ram.read((i + reg) & I_BITMASK)

        self._post_Fx55_Fx65()
