"""Bytecode decoder: turns a script's raw instructions into a statement tree.

The decoder walks the instruction stream once, maintaining a stack of open
blocks (``if``/``loop``/``switch``/``thread``).  Structured opcodes push and
pop that stack; everything else appends a statement to the innermost block.
No type inference happens here: local words are declared with the wildcard
type and only their names are registered in the current scope layer, leaving
the real work to :mod:`evtdecomp.inference`.

Call targets are resolved against the scope.  Unknown native methods and
unknown scripts are registered on the fly so later passes can rely on every
callee having a signature; scripts are given a user-function type whose arity
is the number of local words they capture from their caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from .ast.model import (
    Block,
    BreakLoop,
    BreakSwitch,
    CallKind,
    Case,
    Comparison,
    Expression,
    Goto,
    Identifier,
    IdentifierExpr,
    IdentifierOrPointer,
    If,
    Label,
    LiteralFloat,
    LiteralInt,
    Loop,
    MethodCall,
    PointerExpr,
    Return,
    Statement,
    Switch,
    Thread,
    VarAssign,
    VarDeclare,
    Wait,
)
from .datatype import ANY, BOOL, DataType
from .errors import DecodeError, TruncatedScriptError, UnbalancedBlockError, UnknownOpcodeError
from .instruction import Instruction, Opcode, iter_instructions, read_instruction
from .naming import StorageClass, Variable, classify_operand
from .rom import Map
from .scope import Scope


logger = logging.getLogger(__name__)


_COMPARISONS = {
    Opcode.IF_EQ: "==",
    Opcode.IF_NE: "!=",
    Opcode.IF_LT: "<",
    Opcode.IF_GT: ">",
    Opcode.IF_LE: "<=",
    Opcode.IF_GE: ">=",
    Opcode.CASE_EQ: "==",
    Opcode.CASE_NE: "!=",
    Opcode.CASE_LT: "<",
    Opcode.CASE_GT: ">",
    Opcode.CASE_LE: "<=",
    Opcode.CASE_GE: ">=",
}

_ARITHMETIC = {
    Opcode.ADD: "+=",
    Opcode.SUB: "-=",
    Opcode.MUL: "*=",
    Opcode.DIV: "/=",
    Opcode.MOD: "%=",
    Opcode.ADDF: "+=",
    Opcode.SUBF: "-=",
    Opcode.MULF: "*=",
    Opcode.DIVF: "/=",
}

_WRITES = {Opcode.SET, Opcode.SET_CONST, Opcode.SETF}


@dataclass
class _Frame:
    kind: str
    block: Block
    statement: Optional[Statement] = None


def captured_word_count(address: int, data: bytes) -> int:
    """Return one past the highest local word read before being written.

    The scan is linear and ignores control flow, which matches how the engine
    copies the caller's whole register file regardless of the callee's paths.
    """

    written: Set[int] = set()
    captured: Set[int] = set()

    def read(value: int) -> None:
        operand = classify_operand(value)
        if isinstance(operand, Variable) and operand.storage is StorageClass.LOCAL_WORD:
            if operand.index not in written:
                captured.add(operand.index)

    def write(value: int) -> None:
        operand = classify_operand(value)
        if isinstance(operand, Variable) and operand.storage is StorageClass.LOCAL_WORD:
            written.add(operand.index)

    for instruction in iter_instructions(data, address):
        args = instruction.args
        if instruction.opcode in _WRITES and len(args) >= 2:
            if instruction.opcode != Opcode.SET_CONST:
                read(args[1])
            write(args[0])
        elif instruction.opcode in _ARITHMETIC and len(args) >= 2:
            read(args[0])
            read(args[1])
            write(args[0])
        else:
            for arg in args:
                read(arg)

    return max(captured) + 1 if captured else 0


class BytecodeDecoder:
    """Decode scripts of a single map into statement blocks.

    ``image`` is the map the script belongs to; it is used to read scripts
    referenced by ``Exec`` so their captured arguments can be counted.
    """

    def __init__(self, image: Optional[Map] = None) -> None:
        self.image = image

    def decode(self, address: int, data: bytes, scope: Scope) -> Block:
        return _ScriptBuilder(self.image, scope).build(address, data)


def decode(address: int, data: bytes, scope: Scope, image: Optional[Map] = None) -> Block:
    """Convenience wrapper around :class:`BytecodeDecoder`."""

    return BytecodeDecoder(image).decode(address, data, scope)


class _ScriptBuilder:
    def __init__(self, image: Optional[Map], scope: Scope) -> None:
        self.image = image
        self.scope = scope
        self.root: Block = []
        self.stack: List[_Frame] = [_Frame("root", self.root)]
        self.declared: Set[str] = set()
        self._handlers: Dict[int, Callable[[Instruction], None]] = {
            Opcode.RETURN: lambda _: self._append(Return()),
            Opcode.LABEL: lambda ins: self._append(Label(self._arg(ins, 0))),
            Opcode.GOTO: lambda ins: self._append(Goto(self._arg(ins, 0))),
            Opcode.LOOP: self._loop,
            Opcode.END_LOOP: lambda ins: self._close(ins, "loop"),
            Opcode.BREAK_LOOP: lambda _: self._append(BreakLoop()),
            Opcode.WAIT: lambda ins: self._append(Wait(self._expression(self._arg(ins, 0)))),
            Opcode.WAIT_SECS: lambda ins: self._append(
                Wait(self._expression(self._arg(ins, 0)), seconds=True)
            ),
            Opcode.IF_FLAG: self._if,
            Opcode.IF_NOT_FLAG: self._if,
            Opcode.ELSE: self._else,
            Opcode.END_IF: lambda ins: self._close(ins, "if"),
            Opcode.SWITCH: self._switch,
            Opcode.SWITCH_CONST: self._switch,
            Opcode.CASE_DEFAULT: self._case,
            Opcode.CASE_RANGE: self._case,
            Opcode.BREAK_SWITCH: lambda _: self._append(BreakSwitch()),
            Opcode.END_SWITCH: self._end_switch,
            Opcode.SET: self._set,
            Opcode.SET_CONST: self._set,
            Opcode.SETF: self._set,
            Opcode.CALL: self._call,
            Opcode.EXEC: self._exec,
            Opcode.EXEC_WAIT: self._exec,
            Opcode.THREAD: self._thread,
            Opcode.CHILD_THREAD: self._thread,
            Opcode.END_THREAD: lambda ins: self._close(ins, "thread"),
            Opcode.END_CHILD_THREAD: lambda ins: self._close(ins, "child_thread"),
        }
        for opcode in (Opcode.IF_EQ, Opcode.IF_NE, Opcode.IF_LT, Opcode.IF_GT, Opcode.IF_LE, Opcode.IF_GE):
            self._handlers[opcode] = self._if
        for opcode in (Opcode.CASE_EQ, Opcode.CASE_NE, Opcode.CASE_LT, Opcode.CASE_GT, Opcode.CASE_LE, Opcode.CASE_GE):
            self._handlers[opcode] = self._case
        for opcode in _ARITHMETIC:
            self._handlers[opcode] = self._arithmetic

    def build(self, address: int, data: bytes) -> Block:
        offset = 0
        while True:
            instruction = read_instruction(data, offset, address)
            if instruction is None:
                raise TruncatedScriptError("script ends before End", address + offset)
            offset += instruction.size

            if instruction.opcode == Opcode.END:
                if len(self.stack) != 1:
                    raise UnbalancedBlockError(
                        f"End reached with unterminated {self.stack[-1].kind} block",
                        instruction.address,
                    )
                return self.root

            handler = self._handlers.get(instruction.opcode)
            if handler is None:
                raise UnknownOpcodeError(instruction.opcode, instruction.address)
            if self._current.kind == "switch" and handler not in (self._case, self._end_switch):
                raise UnbalancedBlockError("statement outside of a case", instruction.address)
            handler(instruction)

    # ------------------------------------------------------------------
    # operands
    # ------------------------------------------------------------------
    @staticmethod
    def _arg(instruction: Instruction, index: int) -> int:
        if index >= len(instruction.args):
            raise DecodeError(
                f"opcode 0x{instruction.opcode:02X} expects at least {index + 1} argument(s)",
                instruction.address,
            )
        return instruction.args[index]

    def _expression(self, value: int) -> Expression:
        unsigned = value & 0xFFFFFFFF
        if self.scope.lookup_address(unsigned) is not None:
            return PointerExpr(unsigned)
        if self.image is not None and self.image.contains(unsigned):
            return PointerExpr(unsigned)

        operand = classify_operand(value)
        if isinstance(operand, Variable):
            if not operand.storage.is_local:
                self._register_storage(operand)
            return IdentifierExpr(Identifier(operand.name))
        if isinstance(operand, float):
            return LiteralFloat(operand)
        return LiteralInt(operand)

    def _variable(self, instruction: Instruction, index: int) -> Variable:
        operand = classify_operand(self._arg(instruction, index))
        if not isinstance(operand, Variable):
            raise DecodeError(
                f"opcode 0x{instruction.opcode:02X} writes to a non-variable operand",
                instruction.address,
            )
        return operand

    def _register_storage(self, variable: Variable) -> None:
        if self.scope.lookup_name(variable.name) is None:
            self.scope.insert_name(variable.name, BOOL if variable.storage.is_flag else ANY)

    # ------------------------------------------------------------------
    # block stack
    # ------------------------------------------------------------------
    @property
    def _current(self) -> _Frame:
        return self.stack[-1]

    def _append(self, statement: Statement) -> None:
        self._current.block.append(statement)

    def _open(self, kind: str, statement: Statement, block: Block) -> None:
        self._append(statement)
        self.stack.append(_Frame(kind, block, statement))

    def _close(self, instruction: Instruction, kind: str) -> _Frame:
        if self._current.kind != kind:
            raise UnbalancedBlockError(
                f"opcode 0x{instruction.opcode:02X} closes a {kind} block "
                f"but the innermost block is {self._current.kind}",
                instruction.address,
            )
        return self.stack.pop()

    # ------------------------------------------------------------------
    # handlers
    # ------------------------------------------------------------------
    def _loop(self, instruction: Instruction) -> None:
        count = self._arg(instruction, 0)
        loop = Loop(None if count == 0 else self._expression(count))
        self._open("loop", loop, loop.block)

    def _if(self, instruction: Instruction) -> None:
        lhs = self._expression(self._arg(instruction, 0))
        if instruction.opcode == Opcode.IF_FLAG:
            condition = Comparison(lhs, "&", LiteralInt(self._arg(instruction, 1)))
        elif instruction.opcode == Opcode.IF_NOT_FLAG:
            condition = Comparison(lhs, "!&", LiteralInt(self._arg(instruction, 1)))
        else:
            rhs = self._expression(self._arg(instruction, 1))
            condition = Comparison(lhs, _COMPARISONS[Opcode(instruction.opcode)], rhs)
        statement = If(condition)
        self._open("if", statement, statement.block)

    def _else(self, instruction: Instruction) -> None:
        frame = self._current
        if frame.kind != "if" or not isinstance(frame.statement, If) or frame.statement.else_block is not None:
            raise UnbalancedBlockError("Else outside of an if block", instruction.address)
        frame.statement.else_block = []
        frame.block = frame.statement.else_block

    def _switch(self, instruction: Instruction) -> None:
        value = self._arg(instruction, 0)
        if instruction.opcode == Opcode.SWITCH_CONST:
            expression: Expression = LiteralInt(value)
        else:
            expression = self._expression(value)
        statement = Switch(expression)
        self._open("switch", statement, [])

    def _case(self, instruction: Instruction) -> None:
        if self._current.kind == "case":
            self.stack.pop()
        frame = self._current
        if frame.kind != "switch" or not isinstance(frame.statement, Switch):
            raise UnbalancedBlockError("Case outside of a switch block", instruction.address)

        if instruction.opcode == Opcode.CASE_DEFAULT:
            case = Case("default")
        elif instruction.opcode == Opcode.CASE_RANGE:
            case = Case(
                "range",
                [
                    self._expression(self._arg(instruction, 0)),
                    self._expression(self._arg(instruction, 1)),
                ],
            )
        else:
            case = Case(
                _COMPARISONS[Opcode(instruction.opcode)],
                [self._expression(self._arg(instruction, 0))],
            )
        frame.statement.cases.append(case)
        self.stack.append(_Frame("case", case.block))

    def _end_switch(self, instruction: Instruction) -> None:
        if self._current.kind == "case":
            self.stack.pop()
        self._close(instruction, "switch")

    def _set(self, instruction: Instruction) -> None:
        variable = self._variable(instruction, 0)
        value = self._arg(instruction, 1)
        if instruction.opcode == Opcode.SET_CONST:
            unsigned = value & 0xFFFFFFFF
            expression: Expression = (
                PointerExpr(unsigned)
                if self.scope.lookup_address(unsigned) is not None
                else LiteralInt(value)
            )
        else:
            expression = self._expression(value)
        self._write(variable, expression, "=")

    def _arithmetic(self, instruction: Instruction) -> None:
        variable = self._variable(instruction, 0)
        expression = self._expression(self._arg(instruction, 1))
        self._write(variable, expression, _ARITHMETIC[Opcode(instruction.opcode)])

    def _write(self, variable: Variable, expression: Expression, operator: str) -> None:
        name = variable.name
        if variable.storage.is_local and operator == "=" and name not in self.declared:
            self.declared.add(name)
            datatype = BOOL if variable.storage.is_flag else ANY
            self.scope.insert_name(name, datatype)
            self._append(VarDeclare(datatype, Identifier(name), expression))
            return
        if not variable.storage.is_local:
            self._register_storage(variable)
        self._append(VarAssign(Identifier(name), expression, operator))

    def _call(self, instruction: Instruction) -> None:
        target = self._arg(instruction, 0)
        arguments = [self._expression(arg) for arg in instruction.args[1:]]
        self._append(MethodCall(self._callee(target, arguments), arguments, CallKind.CALL))

    def _callee(self, target: int, arguments: List[Expression]) -> IdentifierOrPointer:
        operand = classify_operand(target)
        if isinstance(operand, Variable):
            return IdentifierOrPointer.named(operand.name)
        address = target & 0xFFFFFFFF
        if self.scope.lookup_address(address) is None:
            self.scope.insert_address(
                address, f"func_{address:08X}", DataType.asm([ANY] * len(arguments))
            )
        return IdentifierOrPointer.pointer(address)

    def _exec(self, instruction: Instruction) -> None:
        target = self._arg(instruction, 0)
        operand = classify_operand(target)
        if isinstance(operand, Variable):
            method = IdentifierOrPointer.named(operand.name)
        else:
            address = target & 0xFFFFFFFF
            self._register_script(address)
            method = IdentifierOrPointer.pointer(address)
        kind = CallKind.SPAWN if instruction.opcode == Opcode.EXEC else CallKind.CALL
        self._append(MethodCall(method, [], kind))

    def _register_script(self, address: int) -> None:
        if self.scope.lookup_address(address) is not None:
            return
        data = self.image.read(address) if self.image is not None else None
        if data is None:
            logger.warning(
                "script 0x%08X lies outside the map image; assuming it captures nothing", address
            )
            arity = 0
        else:
            arity = captured_word_count(address, data)
        self.scope.insert_address(address, f"script_{address:08X}", DataType.fun([ANY] * arity))

    def _thread(self, instruction: Instruction) -> None:
        child = instruction.opcode == Opcode.CHILD_THREAD
        statement = Thread(child=child)
        self._open("child_thread" if child else "thread", statement, statement.block)
