"""Layered symbol table used throughout decompilation.

A :class:`Scope` maps VM addresses to names and names to :class:`DataType`
values.  Layers are stacked: the most recently pushed layer is consulted first
so bindings made there shadow the same address or name in outer layers until
the layer is popped again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .datatype import DataType
from .errors import InternalInconsistencyError


@dataclass
class ScopeLayer:
    """Bindings introduced by a single lexical scope."""

    addresses: Dict[int, str] = field(default_factory=dict)
    names: Dict[str, DataType] = field(default_factory=dict)


class Scope:
    """Stack of :class:`ScopeLayer` objects, innermost first.

    A freshly created scope already holds one (base) layer.
    """

    def __init__(self) -> None:
        self._layers: List[ScopeLayer] = []
        self.push()

    def __len__(self) -> int:
        return len(self._layers)

    def push(self) -> None:
        self._layers.insert(0, ScopeLayer())

    def pop(self) -> Optional[ScopeLayer]:
        """Remove and return the current layer, or ``None`` when empty."""

        if not self._layers:
            return None
        return self._layers.pop(0)

    # ------------------------------------------------------------------
    # insertion (current layer only)
    # ------------------------------------------------------------------
    def insert_address(self, address: int, name: str, datatype: DataType) -> Optional[DataType]:
        """Bind ``address`` to ``name`` and ``name`` to ``datatype``.

        Returns the datatype previously bound to ``name`` in the current
        layer, ignoring outer layers.  Rebinding ``address`` itself is not
        reported: the previous name it mapped to is silently replaced.
        """

        current = self._current()
        current.addresses[address] = name
        return self._swap(current, name, datatype)

    def insert_name(self, name: str, datatype: DataType) -> Optional[DataType]:
        return self._swap(self._current(), name, datatype)

    def refine_name(self, name: str, datatype: DataType) -> Optional[DataType]:
        """Record an inferred type for ``name`` in the current layer.

        Only unbound or wildcard entries may be refined.
        """

        previous = self._current().names.get(name)
        if previous is not None and not previous.is_wildcard and previous != datatype:
            raise InternalInconsistencyError(
                f"type inferred for '{name}' ({datatype}) but it is already {previous}"
            )
        return self.insert_name(name, datatype)

    # ------------------------------------------------------------------
    # lookups (innermost first)
    # ------------------------------------------------------------------
    def lookup_address(self, address: int) -> Optional[str]:
        for layer in self._layers:
            name = layer.addresses.get(address)
            if name is not None:
                return name
        return None

    def lookup_name(self, name: str) -> Optional[DataType]:
        return self.lookup_name_bounded(name, len(self._layers))

    def lookup_name_bounded(self, name: str, max_depth: int) -> Optional[DataType]:
        """Look ``name`` up in the nearest ``max_depth + 1`` layers.

        A depth of 0 only consults the current layer.
        """

        for layer in self._layers[: max_depth + 1]:
            datatype = layer.names.get(name)
            if datatype is not None:
                return datatype
        return None

    def _current(self) -> ScopeLayer:
        if not self._layers:
            raise IndexError("scope has no layers")
        return self._layers[0]

    @staticmethod
    def _swap(layer: ScopeLayer, name: str, datatype: DataType) -> Optional[DataType]:
        previous = layer.names.get(name)
        layer.names[name] = datatype
        return previous
