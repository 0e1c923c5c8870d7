"""
Module Records

The unit of a world's module graph. Two kinds:
- SourceModule: compiled from a Python file, may import other specifiers
- SyntheticModule: a fixed set of named exports wrapping one host value

Each record walks a one-way state machine:

    unlinked -> linking -> linked -> evaluating -> evaluated
                     (errored at any transition)

link() resolves every import reachable from a record, evaluate() runs
bodies dependencies-first, each exactly once. A cycle is cut where it
closes: the module that re-enters an ancestor sees that ancestor's
partially initialized namespace.
"""

import ast
import asyncio
import inspect
import types
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from .errors import CompileError, ConfigurationError, EvaluationError, WorldError
from .specifiers import import_requests

if TYPE_CHECKING:
    from .linker import Linker
    from ..runtime.world import World


class ModuleStatus(str, Enum):
    UNLINKED = 'unlinked'
    LINKING = 'linking'
    LINKED = 'linked'
    EVALUATING = 'evaluating'
    EVALUATED = 'evaluated'
    ERRORED = 'errored'


_LINKED_STATES = (ModuleStatus.LINKED, ModuleStatus.EVALUATING, ModuleStatus.EVALUATED)

# Records being evaluated by the current task, outermost first
_evaluation_chain: ContextVar[Tuple['ModuleRecord', ...]] = ContextVar(
    'module_worlds_evaluation_chain', default=()
)


@dataclass(frozen=True)
class ImportMeta:
    """Import-time metadata handed to a source module as __meta__"""

    url: str


class ModuleNamespace(Mapping):
    """
    Live, read-only view of a module's exports.

    Values are read on access, so a later assignment inside the module is
    visible through a namespace obtained earlier.
    """

    def __init__(self, record: 'ModuleRecord'):
        self._record = record

    @property
    def identifier(self) -> str:
        return self._record.identifier

    def __getitem__(self, name: str) -> Any:
        if name not in self._record.export_names():
            raise KeyError(name)
        return self._record.module.__dict__[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._record.export_names())

    def __len__(self) -> int:
        return len(self._record.export_names())

    def __repr__(self) -> str:
        return f"<ModuleNamespace {self._record.identifier!r} {list(self)}>"


class ModuleRecord:
    """Base class for everything stored in a world's cache"""

    kind = ''

    def __init__(self, identifier: str, world: 'World'):
        self._identifier = identifier
        self.world = world
        self.status = ModuleStatus.UNLINKED
        self.error: Optional[BaseException] = None

        # Specifier -> record, filled in while linking
        self.requested: Dict[str, 'ModuleRecord'] = {}

        self.module = types.ModuleType(self.module_name())
        self._requests_task: Optional[asyncio.Future] = None
        self._evaluated: Optional[asyncio.Event] = None
        # Dependency this record's evaluation is currently waiting on
        self._awaiting: Optional['ModuleRecord'] = None

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def namespace(self) -> ModuleNamespace:
        return ModuleNamespace(self)

    @property
    def request_specifiers(self) -> List[str]:
        """Specifiers this module imports statically"""
        return []

    def module_name(self) -> str:
        return self._identifier

    def export_names(self) -> List[str]:
        """Names currently exported, in definition order"""
        raise NotImplementedError

    async def link(self, linker: 'Linker') -> None:
        """
        Resolve every import reachable from this record.

        Records already linked (or further along) are complete subgraphs
        and are not walked again.

        Only the record whose own imports failed to resolve becomes errored.
        The rest of the pass goes back to unlinked and can be linked again
        on its own.

        Raises:
            WorldError: If any specifier in the graph fails to resolve
        """
        pending: List[ModuleRecord] = [self]
        seen = set()
        visited: List[ModuleRecord] = []

        try:
            while pending:
                record = pending.pop()
                if record in seen:
                    continue
                seen.add(record)

                if record.status is ModuleStatus.ERRORED:
                    raise record.error
                if record.status in _LINKED_STATES:
                    continue

                record.status = ModuleStatus.LINKING
                visited.append(record)

                try:
                    dependencies = await record._resolve_requests(linker)
                except Exception as e:
                    record._fail(e)
                    raise
                pending.extend(reversed(dependencies))
        except Exception:
            for record in visited:
                if record.status is ModuleStatus.LINKING:
                    record.status = ModuleStatus.UNLINKED
            self.world.logger.debug(
                'Link aborted',
                identifier=self.identifier,
                modules=len(visited),
            )
            raise

        for record in visited:
            if record.status is ModuleStatus.LINKING:
                record.status = ModuleStatus.LINKED

        self.world.logger.debug(
            'Linked module graph',
            identifier=self.identifier,
            modules=len(visited),
        )

    async def evaluate(self) -> None:
        """
        Evaluate dependencies, then this module, exactly once.

        Raises:
            ConfigurationError: If the record hasn't been linked
            WorldError: If this module or a dependency fails
        """
        if self.status is ModuleStatus.ERRORED:
            raise self.error
        if self.status is ModuleStatus.EVALUATED:
            return
        if self.status in (ModuleStatus.UNLINKED, ModuleStatus.LINKING):
            raise ConfigurationError(
                f"Module must be linked before evaluation: {self.identifier}",
                identifier=self.identifier,
            )

        chain = _evaluation_chain.get()

        if self.status is ModuleStatus.EVALUATING:
            # Cycle back into an ancestor, directly or through another
            # chain that is waiting on this one: deferred binding
            if self._blocks_on(chain):
                return
            # Someone else is evaluating it: wait for them
            await self._evaluated.wait()
            if self.status is ModuleStatus.ERRORED:
                raise self.error
            return

        self.status = ModuleStatus.EVALUATING
        self._evaluated = asyncio.Event()
        token = _evaluation_chain.set(chain + (self,))

        try:
            for dependency in self.requested.values():
                self._awaiting = dependency
                await dependency.evaluate()
            self._awaiting = None
            await self._execute()
        except Exception as e:
            self._fail(e)
            raise
        else:
            self.status = ModuleStatus.EVALUATED
            self.world.logger.info(
                'Evaluated module',
                identifier=self.identifier,
                kind=self.kind,
            )
        finally:
            self._awaiting = None
            _evaluation_chain.reset(token)
            self._evaluated.set()

    def _blocks_on(self, chain: Tuple['ModuleRecord', ...]) -> bool:
        """
        Whether waiting for this record would end up waiting on chain.

        Follows what each evaluating record is awaiting. Reaching a record
        of chain means the wait would close a cycle and never finish.
        """
        seen = set()
        record: Optional[ModuleRecord] = self
        while record is not None and record not in seen:
            if record in chain:
                return True
            seen.add(record)
            record = record._awaiting
        return False

    async def _execute(self) -> None:
        """Run this module's own body"""
        raise NotImplementedError

    async def _resolve_requests(self, linker: 'Linker') -> List['ModuleRecord']:
        """Resolve direct imports once, however many passes ask"""
        if self._requests_task is None:
            self._requests_task = asyncio.ensure_future(self._fetch_requests(linker))
        return await asyncio.shield(self._requests_task)

    async def _fetch_requests(self, linker: 'Linker') -> List['ModuleRecord']:
        specifiers = self.request_specifiers
        records = await asyncio.gather(
            *(linker.resolve(specifier, self.identifier) for specifier in specifiers)
        )
        self.requested = dict(zip(specifiers, records))
        return list(records)

    def _fail(self, error: BaseException) -> None:
        if self.status is ModuleStatus.ERRORED:
            return
        previous = self.status
        self.status = ModuleStatus.ERRORED
        self.error = error
        self.world.logger.error(
            f'Module failed while {previous.value}',
            identifier=self.identifier,
            kind=self.kind,
            error_type=type(error).__name__,
            error=str(error),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.identifier!r} {self.status.value}>"


class SourceModule(ModuleRecord):
    """A module compiled from Python source"""

    kind = 'source'

    def __init__(self, identifier: str, world: 'World', source: str):
        """
        Compile source and seed the module's globals.

        Raises:
            CompileError: If source isn't valid Python
            ConfigurationError: If source uses an import form worlds refuse
        """
        super().__init__(identifier, world)
        self.source = source

        try:
            tree = ast.parse(source, filename=identifier)
            self.code = compile(
                tree,
                identifier,
                'exec',
                flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
                dont_inherit=True,
            )
        except SyntaxError as e:
            raise CompileError(
                f"Syntax error in module {identifier}: {e}",
                identifier=identifier,
            ) from e

        self._requests = import_requests(tree, world.settings.source_suffix)
        self.meta = ImportMeta(url=Path(identifier).as_uri())

        self.module.__dict__.update({
            '__file__': identifier,
            '__meta__': self.meta,
            '__builtins__': world.globals,
            '__dynamic_import__': self._dynamic_import,
        })

    @property
    def request_specifiers(self) -> List[str]:
        return list(self._requests)

    def module_name(self) -> str:
        return Path(self.identifier).stem

    def export_names(self) -> List[str]:
        """__all__ if the module defines it, else its public names"""
        names = self.module.__dict__
        exported = names.get('__all__')
        if exported is None:
            exported = [name for name in names if not name.startswith('_')]
        return [name for name in exported if name in names]

    async def _execute(self) -> None:
        try:
            result = eval(self.code, self.module.__dict__)
            # Top-level await compiles the body into a coroutine
            if inspect.isawaitable(result):
                await result
        except WorldError:
            raise
        except Exception as e:
            raise EvaluationError(
                f"Module {self.identifier} raised {type(e).__name__}: {e}",
                identifier=self.identifier,
                original=e,
            ) from e

    async def _dynamic_import(self, specifier: str) -> types.ModuleType:
        return await self.world.linker.import_dynamic(specifier, self.identifier)


class SyntheticModule(ModuleRecord):
    """
    A module wrapping one host value.

    Export names are fixed when the record is built; their values are read
    from the live host value at evaluation time.
    """

    kind = 'synthetic'

    def __init__(self, identifier: str, world: 'World', value: Any):
        super().__init__(identifier, world)
        self.value = value
        self._export_names = own_export_names(value)

    @property
    def declared_exports(self) -> List[str]:
        """Export names snapshotted when the value was wrapped"""
        return list(self._export_names)

    def export_names(self) -> List[str]:
        return [name for name in self._export_names if name in self.module.__dict__]

    async def _execute(self) -> None:
        for name in self._export_names:
            setattr(self.module, name, read_export(self.value, name))


def own_export_names(value: Any) -> List[str]:
    """
    Snapshot the names a host value exports.

    - Mapping: its string keys
    - Module: __all__, or its public attribute names
    - Other objects with a __dict__: their public attribute names
    - Anything else (numbers, strings, None, sequences): nothing
    """
    if isinstance(value, Mapping):
        return [key for key in value.keys() if isinstance(key, str)]

    if isinstance(value, types.ModuleType):
        exported = getattr(value, '__all__', None)
        if exported is not None:
            return [name for name in exported if isinstance(name, str)]

    if hasattr(value, '__dict__'):
        return [name for name in vars(value) if not name.startswith('_')]

    return []


def read_export(value: Any, name: str) -> Any:
    """Read one export from the live host value, None if it's gone"""
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)
