"""
Unit tests for module records

Covers:
- Source modules: compilation, seeded globals, export names
- Synthetic modules: export snapshots, live values at evaluation
- The state machine (link before evaluate, errored is final)
- Namespaces as live read-only views
"""

import pytest


def write_module(directory, name, source):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding='utf-8')
    return path


def make_world(tmp_path, **kwargs):
    from module_worlds.core.settings import WorldSettings
    from module_worlds.runtime.world import World

    settings = WorldSettings(config_file=tmp_path / 'missing.tsv')
    return World(base_dir=tmp_path, settings=settings, **kwargs)


class TestSourceModule:
    """Test modules compiled from Python source"""

    def test_seeded_globals(self, tmp_path):
        """Should seed __file__, __meta__, __builtins__ and __dynamic_import__"""
        from module_worlds.core.records import ImportMeta, SourceModule

        world = make_world(tmp_path)
        identifier = str(tmp_path / 'index.py')
        record = SourceModule(identifier, world, 'x = 1\n')

        assert record.module.__file__ == identifier
        assert record.module.__builtins__ is world.globals
        assert record.module.__meta__ == ImportMeta(url=(tmp_path / 'index.py').as_uri())
        assert callable(record.module.__dynamic_import__)
        assert record.module.__name__ == 'index'

    def test_request_specifiers(self, tmp_path):
        """Should list static imports in source order"""
        from module_worlds.core.records import SourceModule

        world = make_world(tmp_path)
        record = SourceModule(
            str(tmp_path / 'index.py'),
            world,
            "import json\nfrom .util import helper\n",
        )

        assert record.request_specifiers == ['json', './util.py']

    def test_syntax_error(self, tmp_path):
        """Should raise CompileError for invalid source"""
        from module_worlds.core.errors import CompileError
        from module_worlds.core.records import SourceModule

        world = make_world(tmp_path)
        identifier = str(tmp_path / 'broken.py')

        with pytest.raises(CompileError) as exc_info:
            SourceModule(identifier, world, 'def broken(:\n')

        assert exc_info.value.identifier == identifier
        assert isinstance(exc_info.value.__cause__, SyntaxError)

    @pytest.mark.asyncio
    async def test_export_names_public(self, tmp_path):
        """Should export public names in definition order"""
        write_module(tmp_path, 'index.py', "b = 2\na = 1\n_hidden = 3\n\ndef run():\n    return a\n")
        world = make_world(tmp_path)

        namespace = await world.load('./index.py')

        assert list(namespace) == ['b', 'a', 'run']

    @pytest.mark.asyncio
    async def test_export_names_all(self, tmp_path):
        """Should export exactly __all__ when defined"""
        write_module(tmp_path, 'index.py', "__all__ = ['a', 'missing']\na = 1\nb = 2\n")
        world = make_world(tmp_path)

        namespace = await world.load('./index.py')

        assert list(namespace) == ['a']

    @pytest.mark.asyncio
    async def test_evaluate_before_link(self, tmp_path):
        """Should refuse to evaluate an unlinked record"""
        from module_worlds.core.errors import ConfigurationError
        from module_worlds.core.records import ModuleStatus

        write_module(tmp_path, 'index.py', "x = 1\n")
        world = make_world(tmp_path)
        record = await world.linker.files.resolve_entry('./index.py', tmp_path)

        assert record.status is ModuleStatus.UNLINKED

        with pytest.raises(ConfigurationError):
            await record.evaluate()

    @pytest.mark.asyncio
    async def test_state_transitions(self, tmp_path):
        """Should move unlinked -> linked -> evaluated"""
        from module_worlds.core.records import ModuleStatus

        write_module(tmp_path, 'index.py', "x = 1\n")
        world = make_world(tmp_path)
        record = await world.linker.files.resolve_entry('./index.py', tmp_path)

        await record.link(world.linker)
        assert record.status is ModuleStatus.LINKED

        await record.evaluate()
        assert record.status is ModuleStatus.EVALUATED

    @pytest.mark.asyncio
    async def test_body_runs_once(self, tmp_path):
        """Should not re-run an evaluated module"""
        write_module(tmp_path, 'index.py', "runs.append(1)\n")
        runs = []
        world = make_world(tmp_path, global_seed={'runs': runs})

        record = await world.linker.files.resolve_entry('./index.py', tmp_path)
        await world.drive(record)
        await world.drive(record)
        await record.evaluate()

        assert runs == [1]


class TestSyntheticModule:
    """Test modules wrapping host values"""

    @pytest.mark.asyncio
    async def test_values_read_at_evaluation(self):
        """Should use names from wrap time and values from evaluation time"""
        from module_worlds.runtime.world import World

        value = {'x': 1}
        world = World(import_hooks={'config_source': lambda: value})

        record = await world.linker.externals.resolve('config_source')
        value['x'] = 2
        value['y'] = 3
        await world.drive(record)

        assert dict(record.namespace) == {'x': 2}

    @pytest.mark.asyncio
    async def test_removed_key_binds_none(self):
        """A key removed before evaluation should read as None"""
        from module_worlds.runtime.world import World

        value = {'x': 1, 'gone': 0}
        world = World(import_hooks={'config_source': lambda: value})

        record = await world.linker.externals.resolve('config_source')
        del value['gone']
        await world.drive(record)

        assert record.namespace['gone'] is None
        assert record.namespace['x'] == 1

    @pytest.mark.asyncio
    async def test_non_object_value_has_no_exports(self):
        """Numbers and strings should wrap as empty modules"""
        from module_worlds.runtime.world import World

        world = World(import_hooks={'answer': lambda: 42, 'title': lambda: 'worlds'})

        answer = await world.import_module('answer')
        title = await world.import_module('title')

        assert dict(answer) == {}
        assert dict(title) == {}

    @pytest.mark.asyncio
    async def test_object_attributes_exported(self):
        """Should export an object's public attributes"""
        from types import SimpleNamespace
        from module_worlds.runtime.world import World

        world = World(import_hooks={'settings_provider': lambda: SimpleNamespace(debug=True, _secret=1)})

        namespace = await world.import_module('settings_provider')

        assert dict(namespace) == {'debug': True}

    def test_own_export_names_module_all(self):
        """Should honour a host module's __all__"""
        import json
        from module_worlds.core.records import own_export_names

        assert own_export_names(json) == list(json.__all__)

    def test_own_export_names_mapping(self):
        """Should skip non-string mapping keys"""
        from module_worlds.core.records import own_export_names

        assert own_export_names({'a': 1, 2: 'b'}) == ['a']
        assert own_export_names(None) == []
        assert own_export_names([1, 2]) == []


class TestModuleNamespace:
    """Test namespaces as live read-only views"""

    @pytest.mark.asyncio
    async def test_live_values(self, tmp_path):
        """Should see later assignments made inside the module"""
        write_module(
            tmp_path,
            'index.py',
            "value = 1\n\ndef bump():\n    global value\n    value += 1\n",
        )
        world = make_world(tmp_path)

        namespace = await world.load('./index.py')

        assert namespace['value'] == 1
        namespace['bump']()
        assert namespace['value'] == 2

    @pytest.mark.asyncio
    async def test_read_only(self, tmp_path):
        """Should not support assignment"""
        write_module(tmp_path, 'index.py', "value = 1\n")
        world = make_world(tmp_path)

        namespace = await world.load('./index.py')

        with pytest.raises(TypeError):
            namespace['value'] = 2

    @pytest.mark.asyncio
    async def test_private_names_hidden(self, tmp_path):
        """Should raise KeyError for names that aren't exported"""
        write_module(tmp_path, 'index.py', "_private = 1\n")
        world = make_world(tmp_path)

        namespace = await world.load('./index.py')

        with pytest.raises(KeyError):
            namespace['_private']
        assert '__file__' not in namespace
        assert namespace.identifier == str((tmp_path / 'index.py').resolve())
