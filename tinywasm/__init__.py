"""Values, instructions, module descriptions, archives and runtime storage for a WebAssembly interpreter."""

__version__ = "0.1.0"

__all__ = [
    "archive",
    "errors",
    "instructions",
    "memory",
    "module",
    "reference",
    "segments",
    "table",
    "values",
]