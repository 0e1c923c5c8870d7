"""
Module Worlds: isolated module graphs for Python.

A world is a realm with its own global namespace and its own module
identity graph. Code loaded into a world imports other files by relative
path and other modules by name, and the embedder decides exactly what those
names reach: Python built-ins, host packages, or injected stand-ins.

Within one world a specifier always resolves to one module instance.
Across worlds nothing is shared unless the embedder shares it.

Example:
    >>> from module_worlds import create_world
    >>>
    >>> namespace = await create_world(
    ...     './plugin/index.py',
    ...     global_seed={'config': {'debug': True}},
    ...     import_hooks={'requests': lambda: fake_requests},
    ... )
    >>> namespace['run']()

Not a sandbox:
    Worlds isolate module identity and namespaces. They do not limit
    CPU, memory or time, and objects shared through global_seed are
    shared for real.
"""

from .core.errors import (
    CompileError,
    ConfigurationError,
    EvaluationError,
    NotFoundError,
    WorldError,
)
from .core.records import ImportMeta, ModuleNamespace, ModuleStatus
from .core.settings import WorldSettings, get_settings, reload_settings
from .runtime.world import World, create_world

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "create_world",
    "World",
    "WorldSettings",
    "get_settings",
    "reload_settings",
    "ModuleNamespace",
    "ModuleStatus",
    "ImportMeta",
    "WorldError",
    "ConfigurationError",
    "NotFoundError",
    "CompileError",
    "EvaluationError",
]
