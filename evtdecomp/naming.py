"""Operand classification and variable naming.

Script arguments are signed 32-bit values.  Large negative values do not stand
for themselves: the engine carves the negative range into bands, one per
variable storage class, plus a band of fixed point floats.  This module maps
raw operands onto those classes and mints the names used in decompiled output
(``FunWord_3``, ``MapFlag_1A``, ...), so that the decoder and the calling
convention normaliser agree on how a local word is spelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

__all__ = [
    "StorageClass",
    "Variable",
    "classify_operand",
    "variable_name",
]


LITERAL_LIMIT = -270_000_000
FLOAT_CUTOFF = -220_000_000
FLOAT_OFFSET = -230_000_000
FLOAT_SCALE = 1024.0


class StorageClass(Enum):
    """Variable storage classes, ordered by their operand band."""

    ARRAY_FLAG = ("ArrayFlag", -200_000_000, -210_000_000, True, False)
    ARRAY_VAR = ("ArrayVar", -180_000_000, -190_000_000, False, False)
    GAME_BYTE = ("GameByte", -160_000_000, -170_000_000, False, False)
    AREA_BYTE = ("AreaByte", -140_000_000, -150_000_000, False, False)
    GAME_FLAG = ("GameFlag", -120_000_000, -130_000_000, True, False)
    AREA_FLAG = ("AreaFlag", -100_000_000, -110_000_000, True, False)
    MAP_FLAG = ("MapFlag", -80_000_000, -90_000_000, True, False)
    LOCAL_FLAG = ("FunFlag", -60_000_000, -70_000_000, True, True)
    MAP_VAR = ("MapVar", -40_000_000, -50_000_000, False, False)
    LOCAL_WORD = ("FunWord", -20_000_000, -30_000_000, False, True)

    def __init__(self, prefix: str, cutoff: int, offset: int, is_flag: bool, is_local: bool) -> None:
        self.prefix = prefix
        self.cutoff = cutoff
        self.offset = offset
        self.is_flag = is_flag
        self.is_local = is_local


@dataclass(frozen=True)
class Variable:
    storage: StorageClass
    index: int

    @property
    def name(self) -> str:
        return variable_name(self.storage, self.index)


def variable_name(storage: StorageClass, index: int) -> str:
    return f"{storage.prefix}_{index:X}"


def classify_operand(value: int) -> Union[int, float, Variable]:
    """Return the literal or :class:`Variable` an operand stands for."""

    if value <= LITERAL_LIMIT:
        return value
    if value <= FLOAT_CUTOFF:
        return (value - FLOAT_OFFSET) / FLOAT_SCALE
    storage = _storage_for(value)
    if storage is None:
        return value
    return Variable(storage, value - storage.offset)


def _storage_for(value: int) -> Optional[StorageClass]:
    for storage in StorageClass:
        if value <= storage.cutoff:
            return storage
    return None
