"""Exception hierarchy for the decompiler.

User-facing failures derive from :class:`DecompileError`.  Invariant violations
inside the passes raise :class:`InternalInconsistencyError` instead, which is a
:class:`RuntimeError` so that it is never mistaken for malformed input.
"""

from __future__ import annotations

from typing import Optional

from .datatype import DataType


class DecompileError(Exception):
    """Base class for failures caused by the input being decompiled."""


class DecodeError(DecompileError):
    """The bytecode could not be turned into a statement tree."""

    def __init__(self, message: str, address: Optional[int] = None) -> None:
        self.address = address
        if address is not None:
            message = f"{message} at 0x{address:08X}"
        super().__init__(message)


class UnknownOpcodeError(DecodeError):
    def __init__(self, opcode: int, address: int) -> None:
        self.opcode = opcode
        super().__init__(f"unknown opcode 0x{opcode:02X}", address)


class TruncatedScriptError(DecodeError):
    pass


class UnbalancedBlockError(DecodeError):
    pass


class BytecodeDecompileError(DecompileError):
    """Wraps a :class:`DecodeError` surfaced by the orchestrator."""

    def __init__(self, cause: DecodeError) -> None:
        self.cause = cause
        super().__init__(f"failed to decompile bytecode: {cause}")


class TypeMismatchError(DecompileError):
    """Two pieces of type information about a variable disagree."""


class VarDeclareTypeMismatch(TypeMismatchError):
    def __init__(
        self,
        identifier: str,
        declared_datatype: DataType,
        inferred_datatype: DataType,
    ) -> None:
        self.identifier = identifier
        self.declared_datatype = declared_datatype
        self.inferred_datatype = inferred_datatype
        super().__init__(
            f"variable '{identifier}' declared as {declared_datatype} "
            f"but is used as {inferred_datatype}"
        )


class VarUseTypeMismatch(TypeMismatchError):
    def __init__(
        self,
        identifier: str,
        first_datatype: DataType,
        second_datatype: DataType,
    ) -> None:
        self.identifier = identifier
        self.first_datatype = first_datatype
        self.second_datatype = second_datatype
        super().__init__(
            f"variable '{identifier}' is used as {first_datatype} "
            f"and as {second_datatype}"
        )


class InternalInconsistencyError(RuntimeError):
    """A pass broke one of its own invariants."""
