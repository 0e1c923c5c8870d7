"""
Linker

The single entry point for turning an import specifier into a module
record. Used three ways:
- by the link phase, for every static import in the graph
- by module code, through `await __dynamic_import__(specifier)`
- by the world's `__import__`, which serves import statements at
  evaluation time from the records the link phase attached

Routing:
- './x.py', '../x.py' -> FileResolver
- '/abs/x.py', 'file:///...' -> ConfigurationError
- anything else -> ExternalResolver
"""

import types
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from .errors import ConfigurationError, NotFoundError
from .external_resolver import ExternalResolver
from .file_resolver import FileResolver
from .records import ModuleRecord, ModuleStatus
from .specifiers import SpecifierKind, relative_import_specifier, require_importable

if TYPE_CHECKING:
    from ..runtime.world import World


class Linker:
    """Dispatches specifiers to the file and external resolvers"""

    def __init__(self, world: 'World'):
        self.world = world
        self.files = FileResolver(world)
        self.externals = ExternalResolver(world)

    async def resolve(self, specifier: str, referencing_identifier: str) -> ModuleRecord:
        """
        Resolve specifier as imported by referencing_identifier.

        Static imports are returned as-is (possibly unlinked); the pass that
        asked is responsible for linking and evaluating them.

        Raises:
            ConfigurationError: If specifier is absolute or a URL
        """
        try:
            kind = require_importable(specifier)
        except ConfigurationError:
            self.world.logger.error(
                'Specifier rejected',
                identifier=specifier,
                referrer=referencing_identifier,
            )
            raise

        if kind is SpecifierKind.RELATIVE:
            return await self.files.resolve(specifier, referencing_identifier)

        return await self.externals.resolve(specifier)

    async def import_dynamic(self, specifier: str, referencing_identifier: str) -> types.ModuleType:
        """
        Resolve a runtime-computed import and drive it to evaluated.

        No outer pass will link or evaluate the record, so this call does.

        Returns:
            The evaluated module object
        """
        record = await self.resolve(specifier, referencing_identifier)
        self.world.logger.debug(
            'Dynamic import',
            identifier=record.identifier,
            referrer=referencing_identifier,
            status=record.status.value,
        )
        await self.world.drive(record)
        return record.module


class WorldImporter:
    """
    The `__import__` installed in a world's global namespace.

    Import statements only ever reach records the link phase already
    resolved for the calling module. Anything else, like
    `__import__(computed_name)`, has to go through `__dynamic_import__`.
    """

    def __init__(self, world: 'World'):
        self.world = world

    def __call__(
        self,
        name: str,
        globals: Optional[Dict[str, Any]] = None,
        locals: Optional[Dict[str, Any]] = None,
        fromlist: Optional[Sequence[str]] = (),
        level: int = 0,
    ) -> Any:
        record = self._caller(name, globals)
        suffix = self.world.settings.source_suffix

        if level > 0:
            # from .b import x
            if name:
                return self._linked(record, relative_import_specifier(name, level, suffix))

            # from . import b, c
            return types.SimpleNamespace(**{
                item: self._linked(record, relative_import_specifier(item, level, suffix))
                for item in fromlist or ()
            })

        # import a.b binds a
        if not fromlist and '.' in name:
            return self._linked(record, name.split('.')[0])

        return self._linked(record, name)

    def _caller(self, name: str, globals: Optional[Dict[str, Any]]) -> ModuleRecord:
        identifier = (globals or {}).get('__file__')
        record = self.world.cache.peek(identifier) if identifier else None

        if record is None:
            raise NotFoundError(
                f"Cannot import {name!r}: caller is not a module of this world",
                identifier=name,
            )
        return record

    def _linked(self, record: ModuleRecord, specifier: str) -> types.ModuleType:
        dependency = record.requested.get(specifier)

        if dependency is None:
            raise NotFoundError(
                f"{specifier!r} was not linked for {record.identifier}; "
                f"use `await __dynamic_import__({specifier!r})` for computed imports",
                identifier=specifier,
            )
        if dependency.status is ModuleStatus.ERRORED:
            raise dependency.error

        return dependency.module
