"""
Runtime for module worlds.

Composes the core primitives into worlds:
- World: realm + cache + hooks + logger, drives link then evaluate
- create_world: build a world, load an entry point, return its namespace
"""

from .world import World, create_world

__all__ = [
    "World",
    "create_world",
]
