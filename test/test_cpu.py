#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import unittest
from c8dbg.constants import DEFAULT_KEYMAP, FONT, INSTRUCTION_SETS
from c8dbg.cpu import CPU, CPUError
from c8dbg.decoder import decode
from c8dbg.framebuffer import Framebuffer
from c8dbg.machine import Machine
from c8dbg.stack import StackError
from c8dbg.renderers.r_null import Renderer
from c8dbg.inputs.i_null import Inputs


class ScriptedInputs(Inputs):
    # Hands out a fixed list of key codes, then reports the input has closed
    def __init__(self, codes=()):
        super().__init__(DEFAULT_KEYMAP, None)
        self.codes = list(codes)

    def read_keycode(self):
        return self.codes.pop(0) if self.codes else None


def make_cpu(instruction_set="SUPER", codes=()):
    framebuffer = Framebuffer(Renderer())
    machine = Machine(framebuffer, INSTRUCTION_SETS[instruction_set])
    return CPU(machine, ScriptedInputs(codes), seed=1234)


class TestCPU(unittest.TestCase):
    def setUp(self):
        self.cpu = make_cpu()
        self.machine = self.cpu.machine
        self.v = self.machine.v
        self.ram = self.machine.ram
        self.stack = self.machine.stack

    def _check_opcode(self, opcode):
        self.cpu.execute(decode(opcode))

    def _check_invalid_opcode_caught(self, opcode):
        self.assertRaises(CPUError, self._check_opcode, opcode)

    def test_cpu_initial_state(self):
        self.assertEqual(0x200, self.machine.pc)
        self.assertEqual(0, self.machine.i)
        self.assertEqual(0, self.stack.pointer)
        self.assertEqual(FONT, bytes(self.ram.read_block(0, len(FONT))))
        self.assertFalse(self.cpu.halted)

    def test_cpu_fetch(self):
        self.ram.write_block(0x200, bytearray(b"\xFF\xFE"))
        self.assertEqual(0xFFFE, self.cpu.fetch())

    def test_cpu_fetch_end_of_memory(self):
        self.machine.pc = 0xFFF
        self.ram.write(0xFFF, 0x12)
        self.ram.write(0x000, 0x34)
        self.assertEqual(0x1234, self.cpu.fetch())

    def test_cpu_inc_pc_no_wrap(self):
        self.cpu.inc_pc()
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_inc_pc_wrap(self):
        self.machine.pc = 0xFFE
        self.cpu.inc_pc()
        self.assertEqual(0x000, self.machine.pc)

    def test_cpu_decode_exec_fail(self):
        for i in 0x0001, 0x00E1, 0x0FFF, 0x5001, 0x8008, 0x800F, 0x9001, 0xE09F, 0xE0A2, 0xF100, 0xFFFF:
            self._check_invalid_opcode_caught(i)

    def test_cpu_unknown_opcode_reports_value(self):
        self.ram.write_block(0x200, bytearray(b"\x80\x0F"))

        with self.assertRaises(CPUError) as context:
            self.cpu.cycle()

        self.assertIn("0x800f", str(context.exception))
        self.assertIn("0x200", str(context.exception))

    def test_cpu_0000(self):  # HALT
        self._check_opcode(0x0000)
        self.assertTrue(self.cpu.halted)

    def test_cpu_00e0(self):  # CLS
        self.machine.framebuffer.xor_pixel(3, 4)
        self._check_opcode(0x00E0)
        self.assertTrue(all(not any(row) for row in self.machine.framebuffer.snapshot()))

    def test_cpu_00ee(self):  # RET
        self.stack.push(0xFFE)
        self._check_opcode(0x00EE)
        self.assertEqual(0xFFE, self.machine.pc)
        self.assertEqual(0, self.stack.pointer)

    def test_cpu_00ee_underflow(self):  # RET with nothing to return to
        self.assertRaises(StackError, self._check_opcode, 0x00EE)

    def test_cpu_1nnn(self):  # JP addr
        self._check_opcode(0x1FFD)
        self.assertEqual(0xFFD, self.machine.pc)

    def test_cpu_2nnn(self):  # CALL addr
        self._check_opcode(0x2FFC)
        self.assertEqual(0xFFC, self.machine.pc)
        self.assertEqual(0x200, self.stack.pop())

    def test_cpu_2nnn_overflow(self):  # CALL addr, 17 levels deep
        for _ in range(16):
            self._check_opcode(0x2300)

        self.assertEqual(16, self.stack.pointer)
        self.assertRaises(StackError, self._check_opcode, 0x2300)
        self.assertEqual(16, self.stack.pointer)

    def test_cpu_3xkk(self):  # SE Vx, byte
        self.v[0x2] = 0x11
        self._check_opcode(0x3212)
        self.assertEqual(0x200, self.machine.pc)
        self.v[0x2] = 0x12
        self._check_opcode(0x3212)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_4xkk(self):  # SNE Vx, byte
        self.v[0x2] = 0x11
        self._check_opcode(0x4212)
        self.assertEqual(0x202, self.machine.pc)
        self.v[0x2] = 0x12
        self._check_opcode(0x4212)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_5xy0(self):  # SE Vx, Vy
        self.v[0x2] = 0x11
        self.v[0x3] = 0x12
        self._check_opcode(0x5230)
        self.assertEqual(0x200, self.machine.pc)
        self.v[0x3] = 0x11
        self._check_opcode(0x5230)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_skip_distance(self):
        # Measured across a whole cycle: 4 bytes when skipping, 2 otherwise
        cases = (
            (0x3105, 0x05, 0x00, True), (0x3105, 0x06, 0x00, False),
            (0x4105, 0x06, 0x00, True), (0x4105, 0x05, 0x00, False),
            (0x5120, 0x07, 0x07, True), (0x5120, 0x07, 0x08, False),
            (0x9120, 0x07, 0x08, True), (0x9120, 0x07, 0x07, False)
        )

        for start_pc in 0x200, 0x3A4:
            for opcode, v1, v2, skips in cases:
                self.machine.pc = start_pc
                self.v[0x1] = v1
                self.v[0x2] = v2
                self.ram.write_block(start_pc, opcode.to_bytes(2, "big"))
                self.cpu.cycle()
                self.assertEqual(start_pc + (4 if skips else 2), self.machine.pc, hex(opcode))

    def test_cpu_6xkk(self):  # LD Vx, byte
        self._check_opcode(0x62FE)
        self.assertEqual(0xFE, self.v[0x2])

    def test_cpu_7xkk(self):  # ADD Vx, byte
        self.v[0xF] = 0x5
        self._check_opcode(0x72FE)
        self.assertEqual(0xFE, self.v[0x2])
        self._check_opcode(0x7201)
        self.assertEqual(0xFF, self.v[0x2])
        self._check_opcode(0x7201)
        self.assertEqual(0x00, self.v[0x2])
        self.assertEqual(0x5, self.v[0xF])  # No carry flag

    def test_cpu_8xy0(self):  # LD Vx, Vy
        self.v[0x1] = 0x1
        self.v[0x2] = 0x2
        self._check_opcode(0x8120)
        self.assertEqual(0x2, self.v[0x1])

    def _prepare_alu(self):
        self.v[0x1] = 0b10111000
        self.v[0x2] = 0b10001110

    def test_cpu_8xy1(self):  # OR Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8121)
        self.assertEqual(0b10111110, self.v[0x1])

    def test_cpu_8xy2(self):  # AND Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8122)
        self.assertEqual(0b10001000, self.v[0x1])

    def test_cpu_8xy3(self):  # XOR Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8123)
        self.assertEqual(0b00110110, self.v[0x1])

    def test_cpu_logic_leaves_vf(self):
        for i in range(4):
            self.v[0xF] = 0x2
            self._check_opcode(0x8120 + i)
            self.assertEqual(0x2, self.v[0xF])

    def test_cpu_8xy4_carry(self):  # ADD Vx, Vy (carry)
        self._prepare_alu()
        self._check_opcode(0x8124)
        self.assertEqual(0b01000110, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy4_no_carry(self):  # ADD Vx, Vy (no carry)
        self.v[0x1] = 0x1
        self.v[0xF] = 0x2  # Use Vf as an input to check flag ordering too
        self._check_opcode(0x81F4)
        self.assertEqual(0x3, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xy4_all_sums(self):  # ADD Vx, Vy
        for a in range(0, 0x100, 3):
            for b in range(0, 0x100, 5):
                self.v[0x3] = a
                self.v[0x4] = b
                self._check_opcode(0x8344)
                self.assertEqual((a + b) % 256, self.v[0x3])
                self.assertEqual(int(a + b > 255), self.v[0xF])

    def test_cpu_8xy5_no_borrow(self):  # SUB Vx, Vy (no borrow)
        self.v[0x1] = 0x3
        self.v[0x2] = 0x1
        self._check_opcode(0x8125)
        self.assertEqual(0x2, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])
        self.v[0x1] = 0xFF
        self.v[0xF] = 0xFF
        self._check_opcode(0x81F5)
        self.assertEqual(0x0, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy5_borrow(self):  # SUB Vx, Vy (borrow)
        self.v[0x1] = 0x1
        self.v[0x2] = 0x2
        self._check_opcode(0x8125)
        self.assertEqual(0xFF, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xy5_equal(self):  # SUB Vx, Vy (equal values do not borrow)
        self.v[0x1] = 0x7
        self.v[0x2] = 0x7
        self._check_opcode(0x8125)
        self.assertEqual(0x0, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy7(self):  # SUBN Vx, Vy
        self.v[0x1] = 0x4
        self.v[0x2] = 0x2
        self._check_opcode(0x8127)
        self.assertEqual(0xFE, self.v[0x1])
        self.assertEqual(0x2, self.v[0x2])
        self.assertEqual(0x0, self.v[0xF])
        self.v[0x1] = 0x2
        self.v[0x2] = 0x4
        self._check_opcode(0x8127)
        self.assertEqual(0x2, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy6_in_place(self):  # SHR Vx (Super-CHIP)
        self.v[0x1] = 0x5
        self.v[0x2] = 0x80
        self._check_opcode(0x8126)
        self.assertEqual(0x2, self.v[0x1])
        self.assertEqual(0x80, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xye_in_place(self):  # SHL Vx (Super-CHIP)
        self.v[0x1] = 0x81
        self.v[0x2] = 0x01
        self._check_opcode(0x812E)
        self.assertEqual(0x02, self.v[0x1])
        self.assertEqual(0x01, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])
        self._check_opcode(0x812E)
        self.assertEqual(0x04, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_9xy0(self):  # SNE Vx, Vy
        self.v[0x2] = 0x15
        self.v[0x3] = 0x16
        self._check_opcode(0x9230)
        self.assertEqual(0x202, self.machine.pc)
        self.v[0x3] = 0x15
        self._check_opcode(0x9230)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_annn(self):  # LD I, addr
        self.assertEqual(0, self.machine.i)
        self._check_opcode(0xAFF1)
        self.assertEqual(0xFF1, self.machine.i)

    def test_cpu_bnnn_register_offset(self):  # JP Vx, addr (Super-CHIP)
        self.v[0x0] = 0x10
        self.v[0x3] = 0x04
        self._check_opcode(0xB302)
        self.assertEqual(0x306, self.machine.pc)
        self.v[0xF] = 0xFD
        self._check_opcode(0xBF0E)
        self.assertEqual(0x00B, self.machine.pc)

    def test_cpu_cxkk(self):  # RND Vx, byte
        for _ in range(200):
            self._check_opcode(0xC10F)
            self.assertEqual(0, self.v[0x1] & 0xF0)

        self._check_opcode(0xC100)
        self.assertEqual(0, self.v[0x1])

    def test_cpu_cxkk_seeded(self):  # RND Vx, byte
        other = make_cpu()

        for _ in range(20):
            self._check_opcode(0xC2FF)
            other.execute(decode(0xC2FF))
            self.assertEqual(self.v[0x2], other.machine.v[0x2])

    def test_cpu_dxyn(self):  # DRW Vx, Vy, nibble
        # Draw the '0' glyph from the font at (2, 3)
        self.v[0x1] = 2
        self.v[0x2] = 3
        self.machine.i = 0
        self.v[0xF] = 0x7
        self._check_opcode(0xD125)
        self.assertEqual(0, self.v[0xF])
        rows = self.machine.framebuffer.snapshot()
        self.assertEqual(b"\x00\x00\x01\x01\x01\x01\x00\x00", rows[3][:8])
        self.assertEqual(b"\x00\x00\x01\x00\x00\x01\x00\x00", rows[4][:8])

        # Drawing again erases it and reports the collision
        self._check_opcode(0xD125)
        self.assertEqual(1, self.v[0xF])
        self.assertTrue(all(not any(row) for row in self.machine.framebuffer.snapshot()))

    def test_cpu_dxyn_vf_operand(self):  # DRW Vx, VF, nibble
        # The origin is read before Vf is cleared
        self.v[0x1] = 0
        self.v[0xF] = 5
        self.machine.i = 0
        self._check_opcode(0xD1F1)
        self.assertEqual(1, self.machine.framebuffer.get_pixel(0, 5))
        self.assertEqual(0, self.v[0xF])

    def test_cpu_dxyn_zero_rows(self):  # DRW Vx, Vy, 0
        self.v[0xF] = 1
        self._check_opcode(0xD120)
        self.assertEqual(0, self.v[0xF])

    def test_cpu_ex9e(self):  # SKP Vx
        self.v[0x1] = 0x4
        self._check_opcode(0xE19E)
        self.assertEqual(0x200, self.machine.pc)
        self.machine.keys[0x4] = 1
        self._check_opcode(0xE19E)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_exa1(self):  # SKNP Vx
        self.v[0x1] = 0x4
        self._check_opcode(0xE1A1)
        self.assertEqual(0x202, self.machine.pc)
        self.machine.keys[0x4] = 1
        self._check_opcode(0xE1A1)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_key_skip_out_of_range(self):
        self.v[0x1] = 0x10

        for opcode in 0xE19E, 0xE1A1:
            self._check_opcode(opcode)
            self.assertEqual(0x200, self.machine.pc)

    def test_cpu_fx07(self):  # LD Vx, DT
        self.assertEqual(0x0, self.v[0x2])
        self.machine.dt = 0x2
        self._check_opcode(0xF207)
        self.assertEqual(0x2, self.v[0x2])

    def test_cpu_fx0a(self):  # LD Vx, K
        cpu = make_cpu(codes=[ord("x"), ord("v"), ord("4")])
        cpu.execute(decode(0xF30A))
        self.assertEqual(0x0, cpu.machine.v[0x3])
        cpu.execute(decode(0xF30A))
        self.assertEqual(0xF, cpu.machine.v[0x3])
        cpu.execute(decode(0xF30A))
        self.assertEqual(0xC, cpu.machine.v[0x3])
        self.assertFalse(cpu.halted)

    def test_cpu_fx0a_unmapped(self):  # LD Vx, K
        cpu = make_cpu(codes=[ord("!")])

        with self.assertRaises(CPUError) as context:
            cpu.execute(decode(0xF30A))

        self.assertIn("33", str(context.exception))

    def test_cpu_fx0a_input_closed(self):  # LD Vx, K
        self._check_opcode(0xF30A)
        self.assertTrue(self.cpu.halted)

    def test_cpu_fx15(self):  # LD DT, Vx
        self.assertEqual(0x0, self.machine.dt)
        self.v[0x2] = 0x3
        self._check_opcode(0xF215)
        self.assertEqual(0x3, self.machine.dt)

    def test_cpu_fx18(self):  # LD ST, Vx
        self.assertEqual(0x0, self.machine.st)
        self.v[0x3] = 0x4
        self._check_opcode(0xF318)
        self.assertEqual(0x4, self.machine.st)

    def test_cpu_timers_count_cycles(self):
        self.machine.dt = 2
        self.machine.st = 1
        self.ram.write_block(0x200, bytearray(b"\x60\x00" * 3))

        self.cpu.cycle()
        self.assertEqual((1, 0), (self.machine.dt, self.machine.st))
        self.cpu.cycle()
        self.assertEqual((0, 0), (self.machine.dt, self.machine.st))
        self.cpu.cycle()
        self.assertEqual((0, 0), (self.machine.dt, self.machine.st))

    def test_cpu_fx1e_no_overflow(self):  # ADD I, Vx
        self.v[0x1] = 0x2
        self.machine.i = 0x3
        self._check_opcode(0xF11E)
        self.assertEqual(0x5, self.machine.i)
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_fx1e_overflow(self):  # ADD I, Vx (Super-CHIP flags the carry)
        self.v[0x4] = 0xFD
        self.machine.i = 0xFFD
        self._check_opcode(0xF41E)
        self.assertEqual(0x0FA, self.machine.i)
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_fx29(self):  # LD F, Vx
        self.v[0x1] = 0x9
        self._check_opcode(0xF129)
        self.assertEqual(45, self.machine.i)
        self.v[0x1] = 0x1A  # Only the low nibble selects the glyph
        self._check_opcode(0xF129)
        self.assertEqual(50, self.machine.i)

    def test_cpu_fx33_normal(self):  # LD B, Vx
        self.machine.i = 0x300
        self.v[0x1] = 205
        self._check_opcode(0xF133)
        self.assertEqual(b"\x02\x00\x05", bytes(self.ram.read_block(0x300, 3)))
        self.v[0x1] = 0xFE
        self._check_opcode(0xF133)
        self.assertEqual(b"\x02\x05\x04", bytes(self.ram.read_block(0x300, 3)))

    def test_cpu_fx33_memory_wrap(self):  # LD B, Vx
        self.machine.i = 0xFFE
        self.v[0x2] = 0xFD
        self._check_opcode(0xF233)
        self.assertEqual(0x2, self.ram.read(0xFFE))
        self.assertEqual(0x5, self.ram.read(0xFFF))
        self.assertEqual(0x3, self.ram.read(0x000))

    def test_cpu_fx55(self):  # LD [I], Vx
        for reg in range(0x10):
            self.v[reg] = reg + 1

        self.machine.i = 0x400
        self._check_opcode(0xF155)  # Every register is stored, whatever x is
        self.assertEqual(bytes(range(1, 17)), bytes(self.ram.read_block(0x400, 16)))
        self.assertEqual(0x0, self.ram.read(0x410))
        self.assertEqual(0x400, self.machine.i)

    def test_cpu_fx65(self):  # LD Vx, [I]
        self.ram.write_block(0x400, bytes(range(0x20, 0x30)))
        self.machine.i = 0x400
        self._check_opcode(0xF065)
        self.assertEqual(bytes(range(0x20, 0x30)), bytes(self.v))
        self.assertEqual(0x400, self.machine.i)

    # Scenarios

    def test_cpu_run_add_and_halt(self):
        self.machine.load_program(bytes((0x60, 0x05, 0x61, 0x03, 0x80, 0x14, 0x00, 0x00)))
        self.cpu.run()
        self.assertTrue(self.cpu.halted)
        self.assertEqual(8, self.v[0x0])
        self.assertEqual(3, self.v[0x1])
        self.assertEqual(0, self.v[0xF])

    def test_cpu_call_then_return(self):
        self.machine.load_program(bytes((0x22, 0x06, 0x00, 0x00, 0x00, 0x00, 0x00, 0xEE)))
        self.cpu.cycle()
        self.assertEqual(0x206, self.machine.pc)
        self.assertEqual(1, self.stack.pointer)
        self.cpu.cycle()
        self.assertEqual(0x202, self.machine.pc)
        self.assertEqual(0, self.stack.pointer)
        self.cpu.run()
        self.assertTrue(self.cpu.halted)


class TestCPUCosmac(unittest.TestCase):
    def setUp(self):
        self.cpu = make_cpu("COSMAC")
        self.machine = self.cpu.machine
        self.v = self.machine.v

    def _check_opcode(self, opcode):
        self.cpu.execute(decode(opcode))

    def test_cpu_8xy6_copy(self):  # SHR Vx, Vy
        self.v[0x1] = 0x4
        self.v[0x2] = 0x1
        self._check_opcode(0x8126)
        self.assertEqual(0x0, self.v[0x1])
        self.assertEqual(0x1, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xye_copy(self):  # SHL Vx, Vy
        self.v[0x1] = 0x1
        self.v[0x2] = 0xC0
        self._check_opcode(0x812E)
        self.assertEqual(0x80, self.v[0x1])
        self.assertEqual(0xC0, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_bnnn_v0_offset(self):  # JP V0, addr
        self._check_opcode(0xB002)
        self.assertEqual(0x2, self.machine.pc)
        self.v[0x0] = 0x1
        self._check_opcode(0xB102)
        self.assertEqual(0x103, self.machine.pc)
        self.v[0x0] = 0xFD
        self._check_opcode(0xBF0E)
        self.assertEqual(0xB, self.machine.pc)

    def test_cpu_fx1e_overflow(self):  # ADD I, Vx (no flag on the COSMAC VIP)
        self.v[0x4] = 0xFD
        self.v[0xF] = 0x7
        self.machine.i = 0xFFD
        self._check_opcode(0xF41E)
        self.assertEqual(0x0FA, self.machine.i)
        self.assertEqual(0x7, self.v[0xF])

    def test_cpu_fx55_fx65_advance_index(self):
        self.machine.i = 0x400
        self._check_opcode(0xF055)
        self.assertEqual(0x410, self.machine.i)
        self._check_opcode(0xF065)
        self.assertEqual(0x420, self.machine.i)


class TestBlockTransfer(unittest.TestCase):
    def test_block_round_trip(self):
        for instruction_set, i_after in ("SUPER", 0x500), ("COSMAC", 0x510):
            cpu = make_cpu(instruction_set)
            machine = cpu.machine
            original = bytes((reg * 37 + 11) & 0xFF for reg in range(0x10))
            machine.v[:] = original
            machine.i = 0x500
            cpu.execute(decode(0xFF55))
            self.assertEqual(i_after, machine.i)

            machine.v[:] = bytes(0x10)
            machine.i = 0x500
            cpu.execute(decode(0xFF65))
            self.assertEqual(original, bytes(machine.v))
