"""Representation utilities for raw script instructions.

Every instruction is a sequence of big-endian 32-bit words: the opcode, the
argument count and that many signed arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Tuple


WORD_SIZE = 4


class Opcode(IntEnum):
    END = 0x01
    RETURN = 0x02
    LABEL = 0x03
    GOTO = 0x04
    LOOP = 0x05
    END_LOOP = 0x06
    BREAK_LOOP = 0x07
    WAIT = 0x08
    WAIT_SECS = 0x09
    IF_EQ = 0x0A
    IF_NE = 0x0B
    IF_LT = 0x0C
    IF_GT = 0x0D
    IF_LE = 0x0E
    IF_GE = 0x0F
    IF_FLAG = 0x10
    IF_NOT_FLAG = 0x11
    ELSE = 0x12
    END_IF = 0x13
    SWITCH = 0x14
    SWITCH_CONST = 0x15
    CASE_EQ = 0x16
    CASE_NE = 0x17
    CASE_LT = 0x18
    CASE_GT = 0x19
    CASE_LE = 0x1A
    CASE_GE = 0x1B
    CASE_DEFAULT = 0x1C
    CASE_RANGE = 0x21
    BREAK_SWITCH = 0x22
    END_SWITCH = 0x23
    SET = 0x24
    SET_CONST = 0x25
    SETF = 0x26
    ADD = 0x27
    SUB = 0x28
    MUL = 0x29
    DIV = 0x2A
    MOD = 0x2B
    ADDF = 0x2C
    SUBF = 0x2D
    MULF = 0x2E
    DIVF = 0x2F
    CALL = 0x43
    EXEC = 0x44
    EXEC_WAIT = 0x46
    THREAD = 0x56
    END_THREAD = 0x57
    CHILD_THREAD = 0x58
    END_CHILD_THREAD = 0x59


@dataclass(frozen=True)
class Instruction:
    address: int
    opcode: int
    args: Tuple[int, ...]

    @property
    def size(self) -> int:
        return WORD_SIZE * (2 + len(self.args))


def _read_word(data: bytes, offset: int, signed: bool) -> int:
    return int.from_bytes(data[offset : offset + WORD_SIZE], "big", signed=signed)


def read_instruction(data: bytes, offset: int, base_address: int) -> Optional[Instruction]:
    """Decode the instruction starting at ``offset``.

    Returns ``None`` when the remaining bytes cannot hold the full
    instruction.
    """

    if offset + 2 * WORD_SIZE > len(data):
        return None
    opcode = _read_word(data, offset, signed=False)
    argc = _read_word(data, offset + WORD_SIZE, signed=False)
    end = offset + WORD_SIZE * (2 + argc)
    if end > len(data):
        return None
    args = tuple(
        _read_word(data, position, signed=True)
        for position in range(offset + 2 * WORD_SIZE, end, WORD_SIZE)
    )
    return Instruction(base_address + offset, opcode, args)


def iter_instructions(data: bytes, base_address: int) -> Iterator[Instruction]:
    """Yield instructions until ``End`` or until the data runs out."""

    offset = 0
    while True:
        instruction = read_instruction(data, offset, base_address)
        if instruction is None:
            return
        yield instruction
        if instruction.opcode == Opcode.END:
            return
        offset += instruction.size
