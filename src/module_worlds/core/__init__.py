"""
Core primitives of module worlds.

This package contains the linker's building blocks:
- specifiers: Classifies import specifiers (relative, absolute, bare)
- records: Module records and their link/evaluate state machine
- cache: One record per identifier per world, race-free
- file_resolver: Relative specifier -> source module
- external_resolver: Bare specifier -> synthetic module (hooks, host)
- linker: The dispatcher shared by static and dynamic imports
- self_logger: Each world logs to itself
- settings: Defaults from environment and worlds.tsv

Everything here is scoped to one world. Nothing keeps process-global
module state.
"""

__all__ = [
    "cache",
    "errors",
    "external_resolver",
    "file_resolver",
    "linker",
    "records",
    "self_logger",
    "settings",
    "specifiers",
]
