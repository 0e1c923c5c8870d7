"""
World Runtime

Composes the core primitives into isolated execution environments.

A World is:
- A global namespace (its own copy of the built-ins, plus the seed)
- A module cache (one record per identifier, never shared)
- Import hooks (bare specifier -> factory, fixed at creation)
- A self-logger

The runtime:
- Builds the global namespace and installs the world's importer
- Loads the entry module through the file resolver
- Drives the graph through link then evaluate
- Returns the entry module's namespace
"""

import asyncio
import builtins
import secrets
from contextvars import ContextVar
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.cache import WorldCache
from ..core.errors import ConfigurationError, WorldError
from ..core.linker import Linker, WorldImporter
from ..core.records import ModuleNamespace, ModuleRecord
from ..core.self_logger import WorldLogger
from ..core.settings import WorldSettings, get_settings, host_module_allowed
from ..core.specifiers import SpecifierKind, require_importable, require_relative


ImportHook = Callable[[], Any]

# Worlds whose link/evaluate pass the current task is running inside
_driving: ContextVar[Tuple['World', ...]] = ContextVar('module_worlds_driving', default=())


class World:
    """
    An isolated realm with its own module graph.

    Provides the execution environment for one module graph.
    """

    def __init__(
        self,
        global_seed: Optional[Mapping[str, Any]] = None,
        import_hooks: Optional[Mapping[str, ImportHook]] = None,
        base_dir: Optional[Path | str] = None,
        settings: Optional[WorldSettings] = None,
        host_modules: Optional[Iterable[str]] = None,
        log_dir: Optional[Path | str] = None,
        inherit_builtins: Optional[bool] = None,
    ):
        """
        Initialize world.

        Args:
            global_seed: Names pre-populating the global namespace (copied,
                         never mutated)
            import_hooks: Exact bare specifier -> factory returning the value
                          that stands in for that module (sync or async)
            base_dir: Directory entry points are relative to (default: cwd)
            settings: Defaults to fall back on (default: get_settings())
            host_modules: Allowlist of top-level host packages
                          (default: settings.host_modules)
            log_dir: Directory for TSV logs (default: settings.log_dir)
            inherit_builtins: Start from a copy of Python's built-ins
                              (default: settings.inherit_builtins)
        """
        self.settings = settings or get_settings()
        self.world_id = secrets.token_hex(6)
        self.base_dir = Path(base_dir if base_dir is not None else Path.cwd()).resolve()

        self.host_modules = (
            frozenset(host_modules) if host_modules is not None else self.settings.host_modules
        )
        self.import_hooks = MappingProxyType(self._check_hooks(import_hooks or {}))

        self.logger = WorldLogger(
            world_id=self.world_id,
            log_dir=log_dir if log_dir is not None else self.settings.log_dir,
            max_log_size=self.settings.max_log_size,
        )

        self.cache = WorldCache()
        self.linker = Linker(self)
        self.globals = self._build_globals(
            global_seed or {},
            self.settings.inherit_builtins if inherit_builtins is None else inherit_builtins,
        )

        self.entry: Optional[ModuleRecord] = None
        self._lock = asyncio.Lock()

        self.logger.info(
            'World created',
            base_dir=str(self.base_dir),
            hooks=len(self.import_hooks),
            seed=len(global_seed or {}),
        )

    async def load(self, entry: str) -> ModuleNamespace:
        """
        Load, link and evaluate the entry module.

        Args:
            entry: Relative path to the entry file ('./index.py')

        Returns:
            The entry module's namespace

        Raises:
            ConfigurationError: If entry isn't relative, or the graph uses an
                                absolute specifier
            NotFoundError: If a source file or bare specifier can't be found
            CompileError: If a source file isn't valid Python
            EvaluationError: If a module body or hook raises
        """
        try:
            require_relative(entry)
            record = await self.linker.files.resolve_entry(entry, self.base_dir)
            await self.drive(record)
        except WorldError as e:
            self.logger.error(
                'World failed to load',
                identifier=entry,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        self.entry = record
        return record.namespace

    async def import_module(self, specifier: str) -> ModuleNamespace:
        """
        Import a module into this world from outside it.

        Relative specifiers resolve against base_dir. The module is linked
        and evaluated before this returns.
        """
        kind = require_importable(specifier)

        if kind is SpecifierKind.RELATIVE:
            record = await self.linker.files.resolve_entry(specifier, self.base_dir)
        else:
            record = await self.linker.externals.resolve(specifier)

        await self.drive(record)
        return record.namespace

    async def drive(self, record: ModuleRecord) -> None:
        """
        Link then evaluate record and everything it imports.

        Independent passes over one world run one at a time. A pass started
        from module code already running inside a pass (a dynamic import)
        joins it instead of waiting for it.
        """
        active = _driving.get()

        if self in active:
            await record.link(self.linker)
            await record.evaluate()
            return

        async with self._lock:
            token = _driving.set(active + (self,))
            try:
                await record.link(self.linker)
                await record.evaluate()
            finally:
                _driving.reset(token)

    def allows_host_module(self, specifier: str) -> bool:
        """Check a bare specifier against this world's host allowlist"""
        return host_module_allowed(specifier, self.host_modules)

    def record(self, identifier: str) -> Optional[ModuleRecord]:
        """Get a loaded module record by canonical identifier"""
        return self.cache.peek(identifier)

    def modules(self) -> List[str]:
        """Identifiers of every module requested in this world"""
        return self.cache.identifiers()

    def get_logs(self, **filters) -> List[Dict[str, Any]]:
        """Get this world's log entries (see WorldLogger.get_logs)"""
        return self.logger.get_logs(**filters)

    def _build_globals(self, seed: Mapping[str, Any], inherit_builtins: bool) -> Dict[str, Any]:
        """
        Build the namespace every module in this world uses as __builtins__.

        The seed is copied; the world's importer always replaces __import__.
        """
        if inherit_builtins:
            namespace = dict(vars(builtins))
        else:
            # Class statements need it whatever else is left out
            namespace = {'__build_class__': builtins.__build_class__}

        namespace.update(seed)
        namespace['__import__'] = WorldImporter(self)

        # Many programs expect a reflexive global binding
        key = self.settings.self_reference_key
        if key not in seed:
            namespace[key] = namespace

        return namespace

    @staticmethod
    def _check_hooks(import_hooks: Mapping[str, ImportHook]) -> Dict[str, ImportHook]:
        hooks = {}
        for specifier, factory in import_hooks.items():
            if not callable(factory):
                raise ConfigurationError(
                    f"Import hook for {specifier!r} is not callable",
                    identifier=specifier,
                )
            if require_importable(specifier) is not SpecifierKind.BARE:
                raise ConfigurationError(
                    f"Import hooks only apply to bare specifiers: {specifier}",
                    identifier=specifier,
                )
            hooks[specifier] = factory
        return hooks

    def __repr__(self) -> str:
        return f"<World {self.world_id} modules={len(self.cache)}>"


async def create_world(
    entry: str,
    *,
    global_seed: Optional[Mapping[str, Any]] = None,
    import_hooks: Optional[Mapping[str, ImportHook]] = None,
    base_dir: Optional[Path | str] = None,
    settings: Optional[WorldSettings] = None,
    **options,
) -> ModuleNamespace:
    """
    Create a world, load entry into it and return the entry's namespace.

    Args:
        entry: Relative path to the entry file ('./index.py')
        global_seed: Names pre-populating the world's global namespace
        import_hooks: Exact bare specifier -> factory for a stand-in value
        base_dir: Directory entry is relative to (default: cwd)
        settings: Defaults to fall back on
        **options: host_modules, log_dir, inherit_builtins (see World)

    Returns:
        The entry module's namespace (export name -> current value)

    Example:
        >>> namespace = await create_world(
        ...     './index.py',
        ...     global_seed={'config': {'debug': True}},
        ...     import_hooks={'requests': lambda: fake_requests},
        ... )
        >>> namespace['main']()
    """
    world = World(
        global_seed=global_seed,
        import_hooks=import_hooks,
        base_dir=base_dir,
        settings=settings,
        **options,
    )
    return await world.load(entry)
