import logging

import pytest

from evtdecomp.ast.model import (
    BreakSwitch,
    CallKind,
    Comparison,
    Identifier,
    IdentifierExpr,
    IdentifierOrPointer,
    If,
    LiteralFloat,
    LiteralInt,
    Loop,
    MethodCall,
    PointerExpr,
    Return,
    Switch,
    Thread,
    VarAssign,
    VarDeclare,
)
from evtdecomp.datatype import ANY, BOOL, DataType
from evtdecomp.decoder import BytecodeDecoder, captured_word_count, decode
from evtdecomp.errors import (
    DecodeError,
    TruncatedScriptError,
    UnbalancedBlockError,
    UnknownOpcodeError,
)
from evtdecomp.instruction import Opcode
from evtdecomp.rom import Map, MapDescriptor
from evtdecomp.scope import Scope


BASE = 0x80240000
NATIVE = 0x802D1DDC


def _word(n: int) -> int:
    return n - 30_000_000


def _flag(n: int) -> int:
    return n - 70_000_000


def _ins(opcode: int, *args: int) -> bytes:
    words = [opcode, len(args)] + [arg & 0xFFFFFFFF for arg in args]
    return b"".join(word.to_bytes(4, "big") for word in words)


def _script(*instructions: bytes) -> bytes:
    return b"".join(instructions) + _ins(Opcode.END)


def _scope() -> Scope:
    scope = Scope()
    scope.insert_address(NATIVE, "DisablePlayerInput", DataType.asm([BOOL]))
    scope.push()
    return scope


def _image(main: bytes, scripts: dict) -> Map:
    data = bytearray(main)
    for offset, script in sorted(scripts.items()):
        data.extend(b"\x00" * (offset - len(data)))
        data.extend(script)
    descriptor = MapDescriptor("test", 0, len(data), BASE, BASE)
    return Map(descriptor, bytes(data))


def _var(name: str) -> IdentifierExpr:
    return IdentifierExpr(Identifier(name))


def test_first_local_write_declares_variable() -> None:
    scope = _scope()
    block = decode(
        BASE,
        _script(
            _ins(Opcode.SET, _word(0), 1),
            _ins(Opcode.SET, _word(0), 0),
            _ins(Opcode.ADD, _word(0), 2),
            _ins(Opcode.RETURN),
        ),
        scope,
    )

    assert block == [
        VarDeclare(ANY, Identifier("FunWord_0"), LiteralInt(1)),
        VarAssign(Identifier("FunWord_0"), LiteralInt(0)),
        VarAssign(Identifier("FunWord_0"), LiteralInt(2), "+="),
        Return(),
    ]
    assert scope.lookup_name_bounded("FunWord_0", 0) == ANY


def test_local_flags_are_declared_as_bool() -> None:
    scope = _scope()
    block = decode(BASE, _script(_ins(Opcode.SET, _flag(2), 1)), scope)

    assert block == [VarDeclare(BOOL, Identifier("FunFlag_2"), LiteralInt(1))]
    assert scope.lookup_name("FunFlag_2") == BOOL


def test_global_storage_is_assigned_and_registered() -> None:
    scope = _scope()
    block = decode(
        BASE,
        _script(
            _ins(Opcode.SET, -50_000_000 + 1, 5),
            _ins(Opcode.SET, -130_000_000 + 0x20, 0),
        ),
        scope,
    )

    assert block == [
        VarAssign(Identifier("MapVar_1"), LiteralInt(5)),
        VarAssign(Identifier("GameFlag_20"), LiteralInt(0)),
    ]
    assert scope.lookup_name("MapVar_1") == ANY
    assert scope.lookup_name("GameFlag_20") == BOOL


def test_float_operands_become_float_literals() -> None:
    block = decode(BASE, _script(_ins(Opcode.SETF, _word(1), -230_000_000 + 1536)), _scope())
    assert block == [VarDeclare(ANY, Identifier("FunWord_1"), LiteralFloat(1.5))]


def test_if_else_blocks_nest() -> None:
    block = decode(
        BASE,
        _script(
            _ins(Opcode.SET, _word(0), 0),
            _ins(Opcode.IF_EQ, _word(0), 5),
            _ins(Opcode.WAIT, 10),
            _ins(Opcode.ELSE),
            _ins(Opcode.RETURN),
            _ins(Opcode.END_IF),
        ),
        _scope(),
    )

    statement = block[1]
    assert isinstance(statement, If)
    assert statement.condition == Comparison(_var("FunWord_0"), "==", LiteralInt(5))
    assert len(statement.block) == 1
    assert statement.else_block == [Return()]


def test_flag_conditions_use_bitwise_tests() -> None:
    block = decode(
        BASE,
        _script(
            _ins(Opcode.IF_NOT_FLAG, _word(0), 4),
            _ins(Opcode.END_IF),
        ),
        _scope(),
    )
    assert block[0].condition == Comparison(_var("FunWord_0"), "!&", LiteralInt(4))


def test_loops_with_and_without_count() -> None:
    block = decode(
        BASE,
        _script(
            _ins(Opcode.LOOP, 0),
            _ins(Opcode.BREAK_LOOP),
            _ins(Opcode.END_LOOP),
            _ins(Opcode.LOOP, 3),
            _ins(Opcode.END_LOOP),
        ),
        _scope(),
    )

    assert isinstance(block[0], Loop) and block[0].count is None
    assert len(block[0].block) == 1
    assert block[1].count == LiteralInt(3)


def test_switch_collects_cases() -> None:
    block = decode(
        BASE,
        _script(
            _ins(Opcode.SET, _word(0), 1),
            _ins(Opcode.SWITCH, _word(0)),
            _ins(Opcode.CASE_EQ, 1),
            _ins(Opcode.RETURN),
            _ins(Opcode.CASE_RANGE, 2, 4),
            _ins(Opcode.CASE_DEFAULT),
            _ins(Opcode.BREAK_SWITCH),
            _ins(Opcode.END_SWITCH),
        ),
        _scope(),
    )

    switch = block[1]
    assert isinstance(switch, Switch)
    assert [case.operator for case in switch.cases] == ["==", "range", "default"]
    assert switch.cases[0].block == [Return()]
    assert switch.cases[1].values == [LiteralInt(2), LiteralInt(4)]
    assert switch.cases[2].block == [BreakSwitch()]


def test_threads_open_their_own_block() -> None:
    block = decode(
        BASE,
        _script(
            _ins(Opcode.CHILD_THREAD),
            _ins(Opcode.WAIT_SECS, 1),
            _ins(Opcode.END_CHILD_THREAD),
        ),
        _scope(),
    )

    assert isinstance(block[0], Thread)
    assert block[0].child
    assert block[0].block[0].seconds


def test_known_call_targets_resolve_to_pointers() -> None:
    scope = _scope()
    block = decode(BASE, _script(_ins(Opcode.CALL, NATIVE, _word(0))), scope)

    assert block == [
        MethodCall(IdentifierOrPointer.pointer(NATIVE), [_var("FunWord_0")], CallKind.CALL)
    ]


def test_unknown_call_targets_are_registered() -> None:
    scope = _scope()
    decode(BASE, _script(_ins(Opcode.CALL, 0x802C0000, 1, 2)), scope)

    assert scope.lookup_address(0x802C0000) == "func_802C0000"
    assert scope.lookup_name("func_802C0000") == DataType.asm([ANY, ANY])


def test_operands_naming_known_addresses_become_pointers() -> None:
    block = decode(BASE, _script(_ins(Opcode.SET, _word(0), NATIVE)), _scope())
    assert block[0].expression == PointerExpr(NATIVE)


def test_exec_registers_script_with_captured_arity() -> None:
    main = _script(
        _ins(Opcode.SET, _word(0), 1),
        _ins(Opcode.EXEC, BASE + 0x100),
        _ins(Opcode.EXEC_WAIT, BASE + 0x100),
    )
    callee = _script(_ins(Opcode.CALL, NATIVE, _word(1)))
    image = _image(main, {0x100: callee})
    scope = _scope()

    block = BytecodeDecoder(image).decode(BASE, main, scope)

    assert scope.lookup_address(BASE + 0x100) == "script_80240100"
    assert scope.lookup_name("script_80240100") == DataType.fun([ANY, ANY])
    assert block[1] == MethodCall(IdentifierOrPointer.pointer(BASE + 0x100), [], CallKind.SPAWN)
    assert block[2].kind is CallKind.CALL


def test_exec_outside_image_captures_nothing(caplog: pytest.LogCaptureFixture) -> None:
    scope = _scope()
    with caplog.at_level(logging.WARNING, logger="evtdecomp.decoder"):
        decode(BASE, _script(_ins(Opcode.EXEC, 0x80400000)), scope)

    assert scope.lookup_name("script_80400000") == DataType.fun()
    assert "outside the map image" in caplog.text


def test_captured_word_count_ignores_words_written_first() -> None:
    data = _script(
        _ins(Opcode.SET, _word(2), _word(0)),
        _ins(Opcode.CALL, NATIVE, _word(2), _word(1)),
    )
    assert captured_word_count(BASE, data) == 2
    assert captured_word_count(BASE, _script(_ins(Opcode.SET, _word(0), 1))) == 0


def test_missing_end_is_truncated() -> None:
    with pytest.raises(TruncatedScriptError):
        decode(BASE, _ins(Opcode.RETURN), _scope())


def test_unknown_opcode_is_reported() -> None:
    with pytest.raises(UnknownOpcodeError) as info:
        decode(BASE, _script(_ins(0x99)), _scope())
    assert info.value.opcode == 0x99
    assert info.value.address == BASE


@pytest.mark.parametrize(
    "instructions",
    [
        [_ins(Opcode.END_IF)],
        [_ins(Opcode.LOOP, 0)],
        [_ins(Opcode.LOOP, 0), _ins(Opcode.END_IF)],
        [_ins(Opcode.ELSE)],
        [_ins(Opcode.CASE_EQ, 1)],
        [_ins(Opcode.SWITCH, 1), _ins(Opcode.RETURN)],
    ],
)
def test_unbalanced_blocks_are_rejected(instructions) -> None:
    with pytest.raises(UnbalancedBlockError):
        decode(BASE, _script(*instructions), _scope())


def test_writes_to_literals_are_rejected() -> None:
    with pytest.raises(DecodeError, match="non-variable"):
        decode(BASE, _script(_ins(Opcode.SET, 5, 1)), _scope())
