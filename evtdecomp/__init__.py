"""Public package exports for the script decompiler."""

from .ast import DeclarationRenderer, FunDeclaration
from .config import CommitPolicy, DecompileOptions
from .datatype import ANY, BOOL, FLOAT, INT, DataType, TypeKind
from .decoder import BytecodeDecoder
from .decompiler import MapDecompiler, decompile_map
from .errors import (
    BytecodeDecompileError,
    DecodeError,
    DecompileError,
    InternalInconsistencyError,
    TypeMismatchError,
    VarDeclareTypeMismatch,
    VarUseTypeMismatch,
)
from .inference import TypeInferencer
from .knowledge import EntryPoint, MethodCatalogue
from .normalizer import CallNormalizer
from .rom import Map, MapDescriptor, Rom
from .scope import Scope

__all__ = [
    "ANY",
    "BOOL",
    "FLOAT",
    "INT",
    "BytecodeDecoder",
    "BytecodeDecompileError",
    "CallNormalizer",
    "CommitPolicy",
    "DataType",
    "DeclarationRenderer",
    "DecodeError",
    "DecompileError",
    "DecompileOptions",
    "EntryPoint",
    "FunDeclaration",
    "InternalInconsistencyError",
    "Map",
    "MapDecompiler",
    "MapDescriptor",
    "MethodCatalogue",
    "Rom",
    "Scope",
    "TypeInferencer",
    "TypeKind",
    "TypeMismatchError",
    "VarDeclareTypeMismatch",
    "VarUseTypeMismatch",
    "decompile_map",
]
