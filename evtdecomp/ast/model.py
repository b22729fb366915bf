"""Statement and expression nodes produced by the bytecode decoder.

The nodes are plain mutable dataclasses.  Passes that refine the tree (the
calling convention normaliser, the type inference engine) rewrite fields and
list items in place; the renderer reads the final tree.  Every node that owns
nested statement lists exposes them through :meth:`Statement.inner_blocks` so
that passes can recurse without knowing about individual statement kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from ..datatype import ANY, BOOL, FLOAT, INT, DataType
from ..formatter import SourceWriter
from ..scope import Scope


Block = List["Statement"]


@dataclass(frozen=True)
class Identifier:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IdentifierOrPointer:
    """Reference to a callee that may still be a raw VM address."""

    name: Optional[str] = None
    address: Optional[int] = None

    @classmethod
    def named(cls, name: str) -> "IdentifierOrPointer":
        return cls(name=name)

    @classmethod
    def pointer(cls, address: int) -> "IdentifierOrPointer":
        return cls(address=address)

    def resolve_name(self, scope: Scope) -> Optional[str]:
        if self.name is not None:
            return self.name
        if self.address is None:
            return None
        return scope.lookup_address(self.address)

    def lookup(self, scope: Scope) -> Optional[Tuple[str, DataType]]:
        """Return the resolved name and its type, if both are in scope."""

        name = self.resolve_name(scope)
        if name is None:
            return None
        datatype = scope.lookup_name(name)
        if datatype is None:
            return None
        return name, datatype

    def render(self, scope: Scope) -> str:
        name = self.resolve_name(scope)
        if name is not None:
            return name
        return f"0x{self.address:08X}"


# ---------------------------------------------------------------------------
# expression nodes
# ---------------------------------------------------------------------------


class Expression:
    """Base class for all expression nodes."""

    def infer_datatype(self, scope: Scope) -> DataType:
        raise NotImplementedError

    def render(self, scope: Scope) -> str:
        raise NotImplementedError


@dataclass
class IdentifierExpr(Expression):
    identifier: Identifier

    def infer_datatype(self, scope: Scope) -> DataType:
        return scope.lookup_name(self.identifier.name) or ANY

    def render(self, scope: Scope) -> str:
        return self.identifier.name


@dataclass
class LiteralInt(Expression):
    value: int

    def infer_datatype(self, scope: Scope) -> DataType:
        return INT

    def render(self, scope: Scope) -> str:
        return str(self.value)

    def to_bool(self) -> "LiteralBool":
        # true is encoded as 1; any other value maps to false.
        return LiteralBool(self.value == 1)


@dataclass
class LiteralBool(Expression):
    value: bool

    def infer_datatype(self, scope: Scope) -> DataType:
        return BOOL

    def render(self, scope: Scope) -> str:
        return "true" if self.value else "false"


@dataclass
class LiteralFloat(Expression):
    value: float

    def infer_datatype(self, scope: Scope) -> DataType:
        return FLOAT

    def render(self, scope: Scope) -> str:
        return repr(float(self.value))


@dataclass
class PointerExpr(Expression):
    address: int

    def infer_datatype(self, scope: Scope) -> DataType:
        name = scope.lookup_address(self.address)
        if name is None:
            return INT
        return scope.lookup_name(name) or INT

    def render(self, scope: Scope) -> str:
        return scope.lookup_address(self.address) or f"0x{self.address:08X}"


@dataclass
class Comparison(Expression):
    lhs: Expression
    operator: str
    rhs: Expression

    def infer_datatype(self, scope: Scope) -> DataType:
        return BOOL

    def render(self, scope: Scope) -> str:
        lhs = self.lhs.render(scope)
        rhs = self.rhs.render(scope)
        if self.operator == "!&":
            return f"!({lhs} & {rhs})"
        return f"{lhs} {self.operator} {rhs}"


# ---------------------------------------------------------------------------
# statement nodes
# ---------------------------------------------------------------------------


class Statement:
    """Base class for all statements."""

    def inner_blocks(self) -> Iterator[Block]:
        return iter(())

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        raise NotImplementedError


def emit_block(block: Block, writer: SourceWriter, scope: Scope) -> None:
    with writer.indented():
        for statement in block:
            statement.emit(writer, scope)


@dataclass
class VarDeclare(Statement):
    datatype: DataType
    identifier: Identifier
    expression: Optional[Expression] = None

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        text = f"var {self.identifier}"
        if not self.datatype.is_wildcard:
            text += f": {self.datatype}"
        if self.expression is not None:
            text += f" = {self.expression.render(scope)}"
        writer.write_line(text)


@dataclass
class VarAssign(Statement):
    identifier: Identifier
    expression: Expression
    operator: str = "="

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line(f"{self.identifier} {self.operator} {self.expression.render(scope)}")


class CallKind(Enum):
    CALL = "call"
    SPAWN = "spawn"


@dataclass
class MethodCall(Statement):
    method: IdentifierOrPointer
    arguments: List[Expression] = field(default_factory=list)
    kind: CallKind = CallKind.CALL

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        args = ", ".join(argument.render(scope) for argument in self.arguments)
        prefix = "spawn " if self.kind is CallKind.SPAWN else ""
        writer.write_line(f"{prefix}{self.method.render(scope)}({args})")


@dataclass
class Return(Statement):
    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line("return")


@dataclass
class BreakLoop(Statement):
    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line("break")


@dataclass
class BreakSwitch(Statement):
    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line("break")


@dataclass
class Label(Statement):
    index: int

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line(f"label {self.index}")


@dataclass
class Goto(Statement):
    index: int

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line(f"goto {self.index}")


@dataclass
class Wait(Statement):
    amount: Expression
    seconds: bool = False

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        suffix = " secs" if self.seconds else ""
        writer.write_line(f"wait {self.amount.render(scope)}{suffix}")


@dataclass
class If(Statement):
    condition: Expression
    block: Block = field(default_factory=list)
    else_block: Optional[Block] = None

    def inner_blocks(self) -> Iterator[Block]:
        yield self.block
        if self.else_block is not None:
            yield self.else_block

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line(f"if {self.condition.render(scope)} {{")
        emit_block(self.block, writer, scope)
        if self.else_block is not None:
            writer.write_line("} else {")
            emit_block(self.else_block, writer, scope)
        writer.write_line("}")


@dataclass
class Loop(Statement):
    """``count`` of ``None`` loops forever."""

    count: Optional[Expression] = None
    block: Block = field(default_factory=list)

    def inner_blocks(self) -> Iterator[Block]:
        yield self.block

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        if self.count is None:
            writer.write_line("loop {")
        else:
            writer.write_line(f"loop {self.count.render(scope)} {{")
        emit_block(self.block, writer, scope)
        writer.write_line("}")


@dataclass
class Case:
    """A switch arm; ``operator`` is a comparison, ``"range"`` or ``"default"``."""

    operator: str
    values: List[Expression] = field(default_factory=list)
    block: Block = field(default_factory=list)

    def header(self, scope: Scope) -> str:
        if self.operator == "default":
            return "default"
        if self.operator == "range":
            low, high = (value.render(scope) for value in self.values)
            return f"case {low}..{high}"
        return f"case {self.operator} {self.values[0].render(scope)}"


@dataclass
class Switch(Statement):
    value: Expression
    cases: List[Case] = field(default_factory=list)

    def inner_blocks(self) -> Iterator[Block]:
        for case in self.cases:
            yield case.block

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line(f"switch {self.value.render(scope)} {{")
        with writer.indented():
            for case in self.cases:
                writer.write_line(f"{case.header(scope)} {{")
                emit_block(case.block, writer, scope)
                writer.write_line("}")
        writer.write_line("}")


@dataclass
class Thread(Statement):
    block: Block = field(default_factory=list)
    child: bool = False

    def inner_blocks(self) -> Iterator[Block]:
        yield self.block

    def emit(self, writer: SourceWriter, scope: Scope) -> None:
        writer.write_line("child thread {" if self.child else "thread {")
        emit_block(self.block, writer, scope)
        writer.write_line("}")


# ---------------------------------------------------------------------------
# declarations
# ---------------------------------------------------------------------------


class Declaration:
    """Top-level named unit."""

    def inner_blocks(self) -> Iterator[Block]:
        return iter(())

    def render(self, scope: Scope, indent: str = "    ") -> str:
        raise NotImplementedError


@dataclass
class FunDeclaration(Declaration):
    name: IdentifierOrPointer
    arguments: List[Tuple[Identifier, DataType]] = field(default_factory=list)
    block: Block = field(default_factory=list)

    def inner_blocks(self) -> Iterator[Block]:
        yield self.block

    def render(self, scope: Scope, indent: str = "    ") -> str:
        writer = SourceWriter(indent)
        arguments = ", ".join(f"{name}: {datatype}" for name, datatype in self.arguments)
        writer.write_line(f"fun {self.name.render(scope)}({arguments}) {{")
        emit_block(self.block, writer, scope)
        writer.write_line("}")
        return writer.render()
