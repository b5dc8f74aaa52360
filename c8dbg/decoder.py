#!/usr/bin/env python3

"""
Instruction Decoder

Splits a 16-bit instruction word into its operands.  Every word is decodable;
whether it means anything is up to the CPU's instruction table.

    family = first nibble (opcode class)
    addr   = nnn
    x/y    = register (0-15)
    byte   = kk
    nibble = n

The dispatch key masks out the operand bits of an instruction so it can be
looked up directly in a table, and the disassembler turns an instruction back
into its mnemonic for debug output.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from collections import namedtuple

Instruction = namedtuple("Instruction", ["opcode", "family", "addr", "x", "y", "byte", "nibble"])

# Families not listed here are identified by their first nibble alone
SUBFAMILY_MASKS = {
    0x0: 0xFFFF,  # Exact match
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF
}

MNEMONICS = {
    0x0000: "HALT",
    0x00E0: "CLS",
    0x00EE: "RET",
    0x1000: "JP 0x{addr:03x}",
    0x2000: "CALL 0x{addr:03x}",
    0x3000: "SE V{x:01x}, 0x{byte:02x}",
    0x4000: "SNE V{x:01x}, 0x{byte:02x}",
    0x5000: "SE V{x:01x}, V{y:01x}",
    0x6000: "LD V{x:01x}, 0x{byte:02x}",
    0x7000: "ADD V{x:01x}, 0x{byte:02x}",
    0x8000: "LD V{x:01x}, V{y:01x}",
    0x8001: "OR V{x:01x}, V{y:01x}",
    0x8002: "AND V{x:01x}, V{y:01x}",
    0x8003: "XOR V{x:01x}, V{y:01x}",
    0x8004: "ADD V{x:01x}, V{y:01x}",
    0x8005: "SUB V{x:01x}, V{y:01x}",
    0x8006: "SHR V{x:01x}, V{y:01x}",
    0x8007: "SUBN V{x:01x}, V{y:01x}",
    0x800E: "SHL V{x:01x}, V{y:01x}",
    0x9000: "SNE V{x:01x}, V{y:01x}",
    0xA000: "LD I, 0x{addr:03x}",
    0xB000: "JP V0, 0x{addr:03x}",
    0xC000: "RND V{x:01x}, 0x{byte:02x}",
    0xD000: "DRW V{x:01x}, V{y:01x}, 0x{nibble:01x}",
    0xE09E: "SKP V{x:01x}",
    0xE0A1: "SKNP V{x:01x}",
    0xF007: "LD V{x:01x}, DT",
    0xF00A: "LD V{x:01x}, K",
    0xF015: "LD DT, V{x:01x}",
    0xF018: "LD ST, V{x:01x}",
    0xF01E: "ADD I, V{x:01x}",
    0xF029: "LD F, V{x:01x}",
    0xF033: "LD B, V{x:01x}",
    0xF055: "LD [I], V{x:01x}",
    0xF065: "LD V{x:01x}, [I]"
}

# On Super-CHIP, shifts work on Vx alone, and the jump offset comes from Vx
SHIFT_QUIRK_MNEMONICS = {
    0x8006: "SHR V{x:01x}",
    0x800E: "SHL V{x:01x}"
}

JUMP_QUIRK_MNEMONICS = {
    0xB000: "JP V{x:01x}, 0x{addr:03x}"
}


def decode(opcode):
    return Instruction(
        opcode,
        (opcode & 0xF000) >> 12,
        opcode & 0xFFF,
        (opcode & 0xF00) >> 8,
        (opcode & 0xF0) >> 4,
        opcode & 0xFF,
        opcode & 0xF
    )


def dispatch_key(instruction):
    return instruction.opcode & SUBFAMILY_MASKS.get(instruction.family, 0xF000)


def disassemble(instruction, quirks=None):
    key = dispatch_key(instruction)
    mnemonic = None

    if quirks is not None:
        if quirks.shift:
            mnemonic = SHIFT_QUIRK_MNEMONICS.get(key)

        if mnemonic is None and quirks.jump:
            mnemonic = JUMP_QUIRK_MNEMONICS.get(key)

    if mnemonic is None:
        mnemonic = MNEMONICS.get(key)

    if mnemonic is None:
        return "???"

    return mnemonic.format(**instruction._asdict())
