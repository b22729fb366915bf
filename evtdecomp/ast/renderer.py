"""Rendering helpers for decompiled declarations."""

from __future__ import annotations

from typing import Iterable, List

from ..scope import Scope
from .model import Declaration


class DeclarationRenderer:
    """Render declarations into a stable textual format."""

    def __init__(self, indent: str = "    ") -> None:
        self.indent = indent

    def render(self, declarations: Iterable[Declaration], scope: Scope) -> str:
        chunks: List[str] = []
        for declaration in declarations:
            chunks.append(declaration.render(scope, self.indent))
        return "\n".join(chunks)
