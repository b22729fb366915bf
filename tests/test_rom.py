import json
from pathlib import Path

import pytest

from evtdecomp.rom import Map, MapDescriptor, Rom


def _write(tmp_path: Path, image: bytes, maps) -> tuple[Path, Path]:
    image_path = tmp_path / "game.z64"
    image_path.write_bytes(image)
    table_path = tmp_path / "maps.json"
    table_path.write_text(json.dumps({"maps": maps}), "utf-8")
    return image_path, table_path


def _entry(name: str, start: int, end: int, main: str = "0x80240000") -> dict:
    return {
        "name": name,
        "rom_start": hex(start),
        "rom_end": end,
        "vram_start": "0x80240000",
        "main": main,
    }


def test_load_slices_overlays(tmp_path: Path) -> None:
    image = bytes(range(16)) * 4
    image_path, table_path = _write(
        tmp_path, image, [_entry("kmr_00", 0x10, 0x20), _entry("kmr_01", 0x20, 0x40, "0x80240008")]
    )

    rom = Rom.load(image_path, table_path)

    assert rom.map_names() == ["kmr_00", "kmr_01"]
    map_ = rom.map("kmr_01")
    assert map_.name == "kmr_01"
    assert map_.data == image[0x20:0x40]
    address, bytecode = map_.main_fun
    assert address == 0x80240008
    assert bytecode == image[0x28:0x40]
    assert [item.name for item in rom.maps()] == ["kmr_00", "kmr_01"]


def test_map_reads_are_bounded_by_its_window() -> None:
    map_ = Map(MapDescriptor("kmr_00", 0, 8, 0x80240000, 0x80240000), b"\x00" * 8)

    assert map_.contains(0x80240004)
    assert not map_.contains(0x80240008)
    assert map_.read(0x80240004) == b"\x00" * 4
    assert map_.read(0x80300000) is None


def test_unknown_map_names_raise_key_error(tmp_path: Path) -> None:
    rom = Rom.load(*_write(tmp_path, b"\x00" * 16, [_entry("kmr_00", 0, 16)]))
    with pytest.raises(KeyError):
        rom.map("mac_00")


@pytest.mark.parametrize(
    "entry, message",
    [
        (_entry("big", 0, 64), "exceed image size"),
        (_entry("empty", 8, 8), "positive length"),
        (_entry("far", 0, 16, "0x80250000"), "outside its VRAM window"),
    ],
)
def test_invalid_descriptors_are_rejected(tmp_path: Path, entry: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        Rom.load(*_write(tmp_path, b"\x00" * 16, [entry]))


def test_duplicate_map_names_are_rejected(tmp_path: Path) -> None:
    maps = [_entry("kmr_00", 0, 8), _entry("kmr_00", 8, 16)]
    with pytest.raises(ValueError, match="duplicate"):
        Rom.load(*_write(tmp_path, b"\x00" * 16, maps))


def test_table_must_list_maps(tmp_path: Path) -> None:
    image_path, table_path = _write(tmp_path, b"", [])
    table_path.write_text(json.dumps([{"name": "kmr_00"}]), "utf-8")
    with pytest.raises(ValueError, match="'maps' list"):
        Rom.load(image_path, table_path)


def test_non_integer_fields_are_reported() -> None:
    with pytest.raises(ValueError, match="rom_start"):
        MapDescriptor.from_json({"name": "kmr_00", "rom_start": "zero", "rom_end": 1, "vram_start": 0, "main": 0})
