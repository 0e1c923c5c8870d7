"""Loads plugins by computed path, using top-level await"""

from .shared import registry

PLUGIN_NAMES = ['alpha', 'beta']


async def load_plugins():
    names = []
    for name in PLUGIN_NAMES:
        plugin = await __dynamic_import__(f'./plugins/{name}.py')
        names.append(plugin.NAME)
    return names


LOADED = await load_plugins()
