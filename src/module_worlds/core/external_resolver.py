"""
External Resolver

Turns a bare specifier into a host value and wraps it as a SyntheticModule.

Where the value comes from, in order:
1. An import hook registered for that exact specifier (never falls through)
2. The host's own importer (built-ins and installed packages), subject to
   the world's host-module allowlist

External identifiers are the raw specifier strings; there is nothing to
canonicalize.
"""

import inspect
from importlib import import_module
from typing import TYPE_CHECKING, Any

from .errors import EvaluationError, NotFoundError, WorldError
from .records import SyntheticModule

if TYPE_CHECKING:
    from ..runtime.world import World


class ExternalResolver:
    """Bare specifier -> SyntheticModule, through the world's cache"""

    def __init__(self, world: 'World'):
        self.world = world

    async def resolve(self, specifier: str) -> SyntheticModule:
        """
        Resolve a bare specifier.

        Returns:
            The world's one SyntheticModule for specifier, unevaluated

        Raises:
            NotFoundError: If no hook matches and the host can't import it
            EvaluationError: If the hook or the host module raises
        """
        cache = self.world.cache

        if specifier in cache:
            self.world.logger.debug('Cache hit', identifier=specifier, kind='synthetic')

        return await cache.get_or_create(specifier, lambda: self._load(specifier))

    async def _load(self, specifier: str) -> SyntheticModule:
        value = await self._import_value(specifier)

        record = SyntheticModule(specifier, self.world, value)
        self.world.logger.info(
            'Wrapped host value',
            identifier=specifier,
            kind=record.kind,
            exports=len(record.declared_exports),
        )
        return record

    async def _import_value(self, specifier: str) -> Any:
        hooks = self.world.import_hooks

        if specifier in hooks:
            return await self._call_hook(specifier, hooks[specifier])

        return self._import_host(specifier)

    async def _call_hook(self, specifier: str, factory) -> Any:
        """Run an import hook; sync and async factories both work"""
        try:
            value = factory()
            if inspect.isawaitable(value):
                value = await value
        except WorldError:
            raise
        except Exception as e:
            self.world.logger.error(
                'Import hook failed',
                identifier=specifier,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise EvaluationError(
                f"Import hook for {specifier} raised {type(e).__name__}: {e}",
                identifier=specifier,
                original=e,
            ) from e

        self.world.logger.debug('Import hook resolved', identifier=specifier)
        return value

    def _import_host(self, specifier: str) -> Any:
        """Delegate to the host importer"""
        if not self.world.allows_host_module(specifier):
            self.world.logger.warning('Host module denied', identifier=specifier)
            raise NotFoundError(
                f"Module not found: {specifier} (not in the host module allowlist)",
                identifier=specifier,
            )

        try:
            return import_module(specifier)
        except ModuleNotFoundError as e:
            # Only a miss on the specifier itself (or its parents) is NotFound;
            # a missing dependency inside a host module is that module failing
            if e.name is None or specifier == e.name or specifier.startswith(e.name + '.'):
                raise NotFoundError(
                    f"Module not found: {specifier}",
                    identifier=specifier,
                ) from e
            raise EvaluationError(
                f"Host module {specifier} failed to import: {e}",
                identifier=specifier,
                original=e,
            ) from e
        except Exception as e:
            raise EvaluationError(
                f"Host module {specifier} raised {type(e).__name__}: {e}",
                identifier=specifier,
                original=e,
            ) from e
