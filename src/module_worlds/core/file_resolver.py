"""
File Resolver

Turns a relative specifier into a canonical identifier and loads the file
behind it as a SourceModule.

The canonical identifier is the resolved absolute path. e.g. './src/utils.py'
relative to '/home/joe/widget/index.py' gives '/home/joe/widget/src/utils.py'.
It is the cache key, so every spelling of the same file ('./a/../b.py',
'./b', './b.py') lands on one record.
"""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import NotFoundError
from .records import SourceModule

if TYPE_CHECKING:
    from ..runtime.world import World


class FileResolver:
    """Relative specifier -> SourceModule, through the world's cache"""

    def __init__(self, world: 'World'):
        self.world = world

    def canonical_identifier(self, specifier: str, directory: Path | str) -> str:
        """
        Resolve specifier against directory.

        Args:
            specifier: Relative specifier ('./x.py', '../lib/y')
            directory: Directory the specifier is relative to

        Returns:
            Absolute, normalized path, with the source suffix added when the
            specifier has none
        """
        path = (Path(directory) / specifier).resolve()
        if not path.suffix:
            path = path.with_suffix(self.world.settings.source_suffix)
        return str(path)

    async def resolve(self, specifier: str, referencing_identifier: str) -> SourceModule:
        """
        Resolve specifier relative to the module that imports it.

        Returns:
            The world's one SourceModule for the file, possibly still unlinked
        """
        directory = Path(referencing_identifier).parent
        return await self._resolve_identifier(self.canonical_identifier(specifier, directory))

    async def resolve_entry(self, specifier: str, base_dir: Path | str) -> SourceModule:
        """Resolve an entry point relative to a directory"""
        return await self._resolve_identifier(self.canonical_identifier(specifier, base_dir))

    async def _resolve_identifier(self, identifier: str) -> SourceModule:
        cache = self.world.cache

        # Not merely an optimization: within a world there is only one
        # instance of a module
        if identifier in cache:
            self.world.logger.debug('Cache hit', identifier=identifier, kind='source')

        return await cache.get_or_create(identifier, lambda: self._load(identifier))

    async def _load(self, identifier: str) -> SourceModule:
        """Read source text and build an unlinked SourceModule"""
        path = Path(identifier)

        try:
            source = await asyncio.to_thread(path.read_text, encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            self.world.logger.error(
                'Module source unreadable',
                identifier=identifier,
                error_type=type(e).__name__,
            )
            raise NotFoundError(
                f"Module file not readable: {identifier} ({type(e).__name__}: {e})",
                identifier=identifier,
            ) from e

        try:
            record = SourceModule(identifier, self.world, source)
        except Exception as e:
            self.world.logger.error(
                'Module source rejected',
                identifier=identifier,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        self.world.logger.info(
            'Loaded module',
            identifier=identifier,
            kind=record.kind,
            imports=len(record.request_specifiers),
        )
        return record
