"""Reaches greeting.py through a different relative path than index.py"""

from .. import greeting

__all__ = ['add', 'GREETING_MODULE']

GREETING_MODULE = greeting
SCRATCH = 'not in __all__'


def add(a, b):
    return a + b
