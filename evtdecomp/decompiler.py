"""Map level decompilation driver."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

from .ast.model import Block, Declaration, FunDeclaration, IdentifierOrPointer
from .ast.renderer import DeclarationRenderer
from .config import DecompileOptions
from .datatype import DataType
from .decoder import BytecodeDecoder
from .errors import BytecodeDecompileError, DecodeError
from .inference import TypeInferencer
from .knowledge import MethodCatalogue
from .normalizer import CallNormalizer
from .rom import Map
from .scope import Scope


logger = logging.getLogger(__name__)


class Decoder(Protocol):
    def decode(self, address: int, data: bytes, scope: Scope) -> Block:
        ...


def seed_scope(catalogue: MethodCatalogue) -> Scope:
    """Create a scope whose base layer holds every known entry point."""

    scope = Scope()
    for entry in catalogue:
        scope.insert_address(entry.address, entry.name, entry.datatype)
    return scope


class MapDecompiler:
    """Turn a map's main script into rendered source text."""

    def __init__(
        self,
        catalogue: MethodCatalogue,
        *,
        options: Optional[DecompileOptions] = None,
        decoder: Optional[Decoder] = None,
    ) -> None:
        self.catalogue = catalogue
        self.options = options or DecompileOptions()
        self.decoder = decoder
        self.normalizer = CallNormalizer(self.options)
        self.inferencer = TypeInferencer(self.options)
        self.renderer = DeclarationRenderer(self.options.indent)

    def decompile(self, map_: Map) -> str:
        declarations, scope = self.build_declarations(map_)
        return self.renderer.render(declarations, scope)

    def build_declarations(self, map_: Map) -> Tuple[List[Declaration], Scope]:
        """Decode, normalise and type the map's declarations.

        Returns the declarations together with the final scope so callers can
        render them or inspect inferred types.
        """

        scope = seed_scope(self.catalogue)
        address, bytecode = map_.main_fun

        # The main script declares no parameters, even though it receives the
        # caller's register file like any other script.
        scope.insert_address(address, "main", DataType.fun())
        scope.push()

        decoder = self.decoder or BytecodeDecoder(map_)
        try:
            block = decoder.decode(address, bytecode, scope)
        except DecodeError as error:
            raise BytecodeDecompileError(error) from error

        declaration = FunDeclaration(IdentifierOrPointer.pointer(address), [], block)
        for inner_block in declaration.inner_blocks():
            self.normalizer.normalize_block(inner_block, scope)
            passes = self.inferencer.infer_block(inner_block, scope)
            logger.debug("map %s: inference settled after %d pass(es)", map_.name, passes)

        return [declaration], scope


def decompile_map(
    map_: Map,
    catalogue: Optional[MethodCatalogue] = None,
    *,
    options: Optional[DecompileOptions] = None,
) -> str:
    """Decompile ``map_`` into source text.

    ``map_`` doubles as the image handle: scripts referenced from the main
    script are read from the same overlay.
    """

    return MapDecompiler(catalogue or MethodCatalogue.default(), options=options).decompile(map_)
