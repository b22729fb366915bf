"""Data types tracked by the scope and the type inference engine.

Script variables start out as ``any`` (the wildcard) and are progressively
refined to concrete types.  Callable types carry their parameter list: ``fun``
types describe user scripts which implicitly capture the caller's local words,
``asm`` types describe native engine methods which receive their arguments
explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple


class TypeKind(Enum):
    ANY = "any"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    FUN = "fun"
    ASM = "asm"


_SCALAR_KINDS = {kind.value: kind for kind in (TypeKind.ANY, TypeKind.BOOL, TypeKind.INT, TypeKind.FLOAT)}


@dataclass(frozen=True)
class DataType:
    """A (possibly parameterised) type."""

    kind: TypeKind
    parameters: Tuple["DataType", ...] = ()

    @classmethod
    def fun(cls, parameters: Iterable["DataType"] = ()) -> "DataType":
        return cls(TypeKind.FUN, tuple(parameters))

    @classmethod
    def asm(cls, parameters: Iterable["DataType"] = ()) -> "DataType":
        return cls(TypeKind.ASM, tuple(parameters))

    @property
    def is_wildcard(self) -> bool:
        return self.kind is TypeKind.ANY

    @property
    def is_callable(self) -> bool:
        return self.kind in (TypeKind.FUN, TypeKind.ASM)

    @property
    def is_bool(self) -> bool:
        return self.kind is TypeKind.BOOL

    def __str__(self) -> str:
        if self.is_callable:
            params = ", ".join(str(param) for param in self.parameters)
            return f"{self.kind.value}({params})"
        return self.kind.value


ANY = DataType(TypeKind.ANY)
BOOL = DataType(TypeKind.BOOL)
INT = DataType(TypeKind.INT)
FLOAT = DataType(TypeKind.FLOAT)


def unify(first: DataType, second: DataType) -> Optional[DataType]:
    """Merge two observations of the same variable.

    The wildcard unifies with anything.  Two concrete types only unify when
    they are equal; otherwise ``None`` is returned and the caller decides how
    to report the conflict.
    """

    if first.is_wildcard:
        return second
    if second.is_wildcard or first == second:
        return first
    return None


def parse_datatype(text: str) -> DataType:
    """Parse the textual form produced by ``str(DataType)``."""

    cleaned = text.strip().lower()
    scalar = _SCALAR_KINDS.get(cleaned)
    if scalar is not None:
        return DataType(scalar)

    for kind in (TypeKind.FUN, TypeKind.ASM):
        prefix = f"{kind.value}("
        if cleaned.startswith(prefix) and cleaned.endswith(")"):
            inner = cleaned[len(prefix) : -1]
            return DataType(kind, tuple(_split_parameters(inner)))

    raise ValueError(f"unknown data type: {text!r}")


def _split_parameters(inner: str) -> Iterable[DataType]:
    depth = 0
    current = []
    for ch in inner:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            yield parse_datatype("".join(current))
            current = []
            continue
        current.append(ch)
    if "".join(current).strip():
        yield parse_datatype("".join(current))
