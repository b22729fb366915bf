"""Calling convention normalisation.

User scripts capture their environment: the engine hands every local word of
the caller to the callee implicitly, so the decoder emits script calls without
arguments.  :class:`CallNormalizer` makes the capture explicit by appending one
argument per declared parameter of the callee.  For example, with a callee
taking two parameters::

    script_80241000()

becomes::

    script_80241000(FunWord_0, FunWord_1)

Native ``asm`` methods already receive their arguments explicitly and are left
untouched.  The pass is meant for decoded trees only; a script call that
already carries arguments is an internal error.
"""

from __future__ import annotations

from typing import Optional

from .ast.model import Block, Identifier, IdentifierExpr, MethodCall
from .config import DecompileOptions
from .datatype import TypeKind
from .errors import InternalInconsistencyError
from .scope import Scope


class CallNormalizer:
    """Expand implicit captures of user script calls into explicit arguments."""

    def __init__(self, options: Optional[DecompileOptions] = None) -> None:
        self.options = options or DecompileOptions()

    def normalize_block(self, block: Block, scope: Scope) -> None:
        for statement in block:
            if isinstance(statement, MethodCall):
                self._expand_call(statement, scope)

            for inner_block in statement.inner_blocks():
                self.normalize_block(inner_block, scope)

    def _expand_call(self, call: MethodCall, scope: Scope) -> None:
        resolved = call.method.lookup(scope)
        if resolved is None:
            return
        name, datatype = resolved
        if datatype.kind is not TypeKind.FUN:
            return

        if call.arguments:
            raise InternalInconsistencyError(
                f"call to script '{name}' already has {len(call.arguments)} argument(s)"
            )
        for index, _ in enumerate(datatype.parameters):
            call.arguments.append(IdentifierExpr(Identifier(self.options.capture_name(index))))


def fix_call_arg_capture(block: Block, scope: Scope, options: Optional[DecompileOptions] = None) -> None:
    """Functional wrapper around :class:`CallNormalizer`."""

    CallNormalizer(options).normalize_block(block, scope)
