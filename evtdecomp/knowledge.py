"""Catalogue of native engine methods living at fixed addresses.

Scripts call into the engine through a table of well known entry points.  The
catalogue records the address, the name we want to see in decompiled output
and the parameter types of every such method so that calls resolve without
ever being decoded as user scripts.  Instances are immutable; a run receives
one explicitly instead of consulting module level state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from .datatype import DataType, parse_datatype


logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE_PATH = Path(__file__).resolve().parent / "data" / "methods.json"


@dataclass(frozen=True)
class EntryPoint:
    """A single native method."""

    address: int
    name: str
    datatype: DataType

    @classmethod
    def from_json(cls, address: int, entry: Mapping[str, Any]) -> "EntryPoint":
        parameters = entry.get("parameters") or []
        if not isinstance(parameters, list):
            raise ValueError(f"parameters of {entry['name']} must be a list")
        return cls(
            address=address,
            name=str(entry["name"]),
            datatype=DataType.asm(parse_datatype(str(param)) for param in parameters),
        )


class MethodCatalogue:
    """Read-only ``address -> EntryPoint`` mapping."""

    def __init__(self, entries: Mapping[int, EntryPoint], *, path: Optional[Path] = None) -> None:
        self._entries: Mapping[int, EntryPoint] = MappingProxyType(dict(entries))
        self.path = path

    @classmethod
    def from_entries(cls, entries: Iterable[EntryPoint]) -> "MethodCatalogue":
        return cls({entry.address: entry for entry in entries})

    @classmethod
    def load(cls, path: Path) -> "MethodCatalogue":
        """Load a catalogue from a JSON object keyed by address."""

        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("method catalogue must contain a JSON object")

        entries: Dict[int, EntryPoint] = {}
        for key, entry in data.items():
            if not isinstance(entry, Mapping) or not entry.get("name"):
                logger.warning("skipping malformed catalogue entry %s in %s", key, path)
                continue
            try:
                address = int(str(key), 0)
            except ValueError:
                logger.warning("skipping catalogue entry with invalid address %r", key)
                continue
            entries[address] = EntryPoint.from_json(address, entry)

        logger.debug("loaded %d entry points from %s", len(entries), path)
        return cls(entries, path=path)

    @classmethod
    def default(cls) -> "MethodCatalogue":
        return cls.load(DEFAULT_CATALOGUE_PATH)

    def lookup(self, address: int) -> Optional[EntryPoint]:
        return self._entries.get(address)

    def __iter__(self) -> Iterator[EntryPoint]:
        return iter(sorted(self._entries.values(), key=lambda entry: entry.address))
