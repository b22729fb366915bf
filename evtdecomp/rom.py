"""Game image and per-map metadata.

A map is an overlay: a slice of the image that the engine copies to a fixed
VRAM window before running the map's main script.  Several maps share the same
VRAM window, so addresses are only meaningful relative to a particular map.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


def _parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, int):
        return value
    try:
        return int(str(value), 0)
    except ValueError:
        raise ValueError(f"map table field {field_name!r} is not an integer: {value!r}") from None


@dataclass(frozen=True)
class MapDescriptor:
    """Location of a map inside the image."""

    name: str
    rom_start: int
    rom_end: int
    vram_start: int
    main: int

    @property
    def length(self) -> int:
        return max(0, self.rom_end - self.rom_start)

    @property
    def vram_end(self) -> int:
        return self.vram_start + self.length

    @classmethod
    def from_json(cls, entry: Mapping[str, Any]) -> "MapDescriptor":
        if "name" not in entry:
            raise ValueError("map table entry is missing a name")
        return cls(
            name=str(entry["name"]),
            rom_start=_parse_int(entry.get("rom_start"), "rom_start"),
            rom_end=_parse_int(entry.get("rom_end"), "rom_end"),
            vram_start=_parse_int(entry.get("vram_start"), "vram_start"),
            main=_parse_int(entry.get("main"), "main"),
        )

    def validate(self, image_length: int) -> None:
        if not (0 <= self.rom_start <= self.rom_end <= image_length):
            raise ValueError(
                f"map {self.name} boundaries [{self.rom_start:#x}, {self.rom_end:#x}) "
                f"exceed image size {image_length:#x}"
            )
        if self.length == 0:
            raise ValueError(f"map {self.name} must have a positive length")
        if not (self.vram_start <= self.main < self.vram_end):
            raise ValueError(
                f"map {self.name} main script 0x{self.main:08X} lies outside its VRAM window"
            )


@dataclass
class Map:
    """A loaded map overlay."""

    descriptor: MapDescriptor
    data: bytes

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def main_fun(self) -> Tuple[int, bytes]:
        """Address and bytecode of the map's main script."""

        address = self.descriptor.main
        return address, self.read(address) or b""

    def contains(self, address: int) -> bool:
        return self.descriptor.vram_start <= address < self.descriptor.vram_end

    def read(self, address: int) -> Optional[bytes]:
        """Return the bytes from ``address`` to the end of the overlay."""

        if not self.contains(address):
            return None
        return self.data[address - self.descriptor.vram_start :]


class Rom:
    """Reader object that exposes the image and its map table."""

    def __init__(self, path: Optional[Path], data: bytes, descriptors: List[MapDescriptor]) -> None:
        self.path = path
        self.data = data
        self._descriptors: Dict[str, MapDescriptor] = {}
        for descriptor in descriptors:
            descriptor.validate(len(data))
            if descriptor.name in self._descriptors:
                raise ValueError(f"duplicate map name {descriptor.name}")
            self._descriptors[descriptor.name] = descriptor

    @classmethod
    def load(cls, image_path: Path, table_path: Path) -> "Rom":
        data = image_path.read_bytes()
        table = json.loads(table_path.read_text("utf-8"))
        if not isinstance(table, Mapping) or not isinstance(table.get("maps"), list):
            raise ValueError("map table must be a JSON object with a 'maps' list")
        descriptors = [MapDescriptor.from_json(entry) for entry in table["maps"]]
        return cls(image_path, data, descriptors)

    def map_names(self) -> List[str]:
        return list(self._descriptors)

    def map(self, name: str) -> Map:
        descriptor = self._descriptors[name]
        return Map(descriptor, self.data[descriptor.rom_start : descriptor.rom_end])

    def maps(self) -> Iterator[Map]:
        for name in self._descriptors:
            yield self.map(name)
