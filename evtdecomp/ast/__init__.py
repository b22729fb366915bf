"""Public exports for the statement tree and its renderer."""

from .model import (
    Block,
    BreakLoop,
    BreakSwitch,
    CallKind,
    Case,
    Comparison,
    Declaration,
    Expression,
    FunDeclaration,
    Goto,
    Identifier,
    IdentifierExpr,
    IdentifierOrPointer,
    If,
    Label,
    LiteralBool,
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
from .renderer import DeclarationRenderer

__all__ = [
    "Block",
    "BreakLoop",
    "BreakSwitch",
    "CallKind",
    "Case",
    "Comparison",
    "Declaration",
    "DeclarationRenderer",
    "Expression",
    "FunDeclaration",
    "Goto",
    "Identifier",
    "IdentifierExpr",
    "IdentifierOrPointer",
    "If",
    "Label",
    "LiteralBool",
    "LiteralFloat",
    "LiteralInt",
    "Loop",
    "MethodCall",
    "PointerExpr",
    "Return",
    "Statement",
    "Switch",
    "Thread",
    "VarAssign",
    "VarDeclare",
    "Wait",
]
