"""Backward type inference over decoded statement blocks.

The decoder declares every local word with the wildcard type ``any``.  This
pass resolves those wildcards from the way variables are *used*: an argument
passed to a method whose parameter is ``bool`` makes the variable a ``bool``,
an assignment from an ``int`` literal makes it an ``int``, and so on.

Statements are scanned in reverse program order so that a later use can fix a
variable's type before its declaration is revisited.  Types learnt during a
pass are collected as an ordered list of candidates and only committed to the
scope once the pass has finished; passes repeat until one commits nothing.
Each committing pass resolves at least one of the finitely many wildcard names
in the block, so the loop terminates; a configurable pass cap guards against
defects.

The only literal rewriting performed is ``int`` -> ``bool`` (``1`` is
``true``, anything else ``false``) once a variable or parameter is known to be
a ``bool``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

from .ast.model import (
    Block,
    Expression,
    IdentifierExpr,
    LiteralInt,
    MethodCall,
    Statement,
    VarAssign,
    VarDeclare,
)
from .config import CommitPolicy, DecompileOptions
from .datatype import ANY, BOOL, INT, DataType, unify
from .errors import InternalInconsistencyError, VarDeclareTypeMismatch, VarUseTypeMismatch
from .scope import Scope


logger = logging.getLogger(__name__)


def _as_bool_literal(expression: Optional[Expression]) -> Optional[Expression]:
    if isinstance(expression, LiteralInt):
        return expression.to_bool()
    return expression


class CandidateSource(Enum):
    """Where a candidate type was learnt from."""

    USE = "use"
    VALUE = "value"
    ANNOTATION = "annotation"


@dataclass(frozen=True)
class Candidate:
    name: str
    datatype: DataType
    source: CandidateSource


class InferenceCandidates:
    """Types proposed during a single pass, in the order they were found.

    Since statements are visited back to front, the first entry for a name is
    the one closest to the end of the block.
    """

    def __init__(self) -> None:
        self._candidates: List[Candidate] = []

    def propose(self, name: str, datatype: DataType, source: CandidateSource) -> None:
        self._candidates.append(Candidate(name, datatype, source))

    def resolve(self) -> Dict[str, DataType]:
        """Merge the concrete candidates of every name into a single type.

        Two uses that disagree are a :class:`VarUseTypeMismatch`.  A use
        overrides an explicit annotation (the declaration reports the clash on
        the next pass) and turns an ``int`` value into a ``bool``, matching the
        literal rewrite.  Any other disagreement is a mismatch as well.
        """

        chosen: Dict[str, Candidate] = {}
        for candidate in self._candidates:
            if candidate.datatype.is_wildcard:
                continue
            existing = chosen.get(candidate.name)
            if existing is None:
                chosen[candidate.name] = candidate
            elif unify(existing.datatype, candidate.datatype) is None:
                chosen[candidate.name] = _overriding(existing, candidate)
        return {name: candidate.datatype for name, candidate in chosen.items()}

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates)


def _overriding(first: Candidate, second: Candidate) -> Candidate:
    for use, other in ((first, second), (second, first)):
        if use.source is not CandidateSource.USE or other.source is CandidateSource.USE:
            continue
        if other.source is CandidateSource.ANNOTATION:
            return use
        if use.datatype == BOOL and other.datatype == INT:
            return use
    raise VarUseTypeMismatch(first.name, first.datatype, second.datatype)


class TypeInferencer:
    """Resolve wildcard variable types of a block to a fixed point."""

    def __init__(self, options: Optional[DecompileOptions] = None) -> None:
        self.options = options or DecompileOptions()

    def infer_block(self, block: Block, scope: Scope) -> int:
        """Run passes over ``block`` until nothing changes.

        Returns the number of passes performed.
        """

        for passes in range(1, self.options.max_inference_passes + 1):
            candidates = InferenceCandidates()
            for statement in reversed(block):
                self._examine(statement, scope, candidates)
                for inner_block in statement.inner_blocks():
                    self.infer_block(inner_block, scope)

            committed = self._commit(candidates, scope)
            logger.debug("inference pass %d committed %d type(s)", passes, committed)
            if not committed:
                return passes

        raise InternalInconsistencyError(
            f"type inference did not converge within {self.options.max_inference_passes} passes"
        )

    # ------------------------------------------------------------------
    # per-statement rules
    # ------------------------------------------------------------------
    def _examine(self, statement: Statement, scope: Scope, candidates: InferenceCandidates) -> None:
        if isinstance(statement, VarDeclare):
            self._declaration(statement, scope, candidates)
        elif isinstance(statement, VarAssign):
            self._assignment(statement, scope, candidates)
        elif isinstance(statement, MethodCall):
            self._call(statement, scope, candidates)

    def _declaration(self, statement: VarDeclare, scope: Scope, candidates: InferenceCandidates) -> None:
        name = statement.identifier.name
        resolved = scope.lookup_name_bounded(name, 0)

        if resolved is not None and not resolved.is_wildcard:
            if statement.datatype.is_wildcard:
                statement.datatype = resolved
            elif statement.datatype != resolved:
                raise VarDeclareTypeMismatch(name, statement.datatype, resolved)
            if resolved.is_bool:
                statement.expression = _as_bool_literal(statement.expression)
            return

        if not statement.datatype.is_wildcard:
            candidates.propose(name, statement.datatype, CandidateSource.ANNOTATION)
        elif statement.expression is not None:
            candidates.propose(name, statement.expression.infer_datatype(scope), CandidateSource.VALUE)
        else:
            candidates.propose(name, ANY, CandidateSource.VALUE)

    def _assignment(self, statement: VarAssign, scope: Scope, candidates: InferenceCandidates) -> None:
        name = statement.identifier.name
        current = scope.lookup_name(name)
        if current is None:
            return
        if current.is_wildcard:
            candidates.propose(name, statement.expression.infer_datatype(scope), CandidateSource.VALUE)
        elif current.is_bool and statement.operator == "=":
            statement.expression = _as_bool_literal(statement.expression)

    def _call(self, statement: MethodCall, scope: Scope, candidates: InferenceCandidates) -> None:
        resolved = statement.method.lookup(scope)
        if resolved is None:
            return
        _, datatype = resolved
        if not datatype.is_callable:
            return

        for index, (parameter, argument) in enumerate(zip(datatype.parameters, statement.arguments)):
            if isinstance(argument, IdentifierExpr):
                current = scope.lookup_name(argument.identifier.name)
                if current is not None and current.is_wildcard:
                    candidates.propose(argument.identifier.name, parameter, CandidateSource.USE)
            elif isinstance(argument, LiteralInt) and parameter.is_bool:
                statement.arguments[index] = argument.to_bool()

    # ------------------------------------------------------------------
    # commit
    # ------------------------------------------------------------------
    def _commit(self, candidates: InferenceCandidates, scope: Scope) -> int:
        resolved = candidates.resolve()
        committed = 0
        for candidate in candidates:
            if candidate.datatype.is_wildcard:
                if self.options.commit_policy is CommitPolicy.SKIP_REMAINING:
                    break
                continue

            datatype = resolved[candidate.name]
            # Also covers names a nested block resolved earlier in this pass.
            current = scope.lookup_name_bounded(candidate.name, 0)
            if current is not None and not current.is_wildcard:
                if unify(current, datatype) is None:
                    raise VarUseTypeMismatch(candidate.name, current, datatype)
                continue

            scope.refine_name(candidate.name, datatype)
            committed += 1
        return committed


def infer_datatypes(block: Block, scope: Scope, options: Optional[DecompileOptions] = None) -> int:
    """Functional wrapper around :class:`TypeInferencer`."""

    return TypeInferencer(options).infer_block(block, scope)
