"""
Specifier Classifier

Sorts import specifiers into three kinds:
- Relative: './utils.py', '../lib/core.py' (resolved against the importer)
- Absolute: '/abs/path.py', 'file:///abs/path.py' (always rejected)
- Bare: 'json', 'os.path', 'left_pad' (hooks or the host importer)

Absolute specifiers are refused outright. They would bypass canonicalization
and let two different strings address the same file, which breaks the
one-instance-per-world cache.

Also maps Python import statements onto specifiers, so that
`from .b import x` and `await __dynamic_import__('./b.py')` land on the same
cache entry.
"""

import ast
import os
import re
from enum import Enum
from typing import List

from .errors import ConfigurationError


_URL_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*://')


class SpecifierKind(str, Enum):
    RELATIVE = 'relative'
    ABSOLUTE = 'absolute'
    BARE = 'bare'


def classify(specifier: str) -> SpecifierKind:
    """
    Classify an import specifier.

    Args:
        specifier: The string passed to an import

    Returns:
        The SpecifierKind

    Raises:
        ConfigurationError: If specifier is empty, not a string, or starts
            with a dot but is neither ./ nor ../
    """
    if not isinstance(specifier, str) or not specifier:
        raise ConfigurationError(f"Invalid module specifier: {specifier!r}")

    if specifier.startswith('./') or specifier.startswith('../'):
        return SpecifierKind.RELATIVE

    # '.', '..', '.hidden': neither a path nor a package name
    if specifier.startswith('.'):
        raise ConfigurationError(
            f"Relative specifiers must start with './' or '../': {specifier}",
            identifier=specifier,
        )

    if (
        specifier.startswith('file:')
        or _URL_PATTERN.match(specifier)
        or os.path.isabs(specifier)
    ):
        return SpecifierKind.ABSOLUTE

    return SpecifierKind.BARE


def require_importable(specifier: str) -> SpecifierKind:
    """Classify specifier, rejecting absolute paths and URLs"""
    kind = classify(specifier)

    if kind is SpecifierKind.ABSOLUTE:
        if specifier.startswith('file:'):
            message = f"File URLs are not supported: {specifier}"
        else:
            message = f"Absolute paths are not supported: {specifier}"
        raise ConfigurationError(message, identifier=specifier)

    return kind


def require_relative(specifier: str) -> SpecifierKind:
    """Entry points must be relative paths"""
    kind = classify(specifier)

    if kind is not SpecifierKind.RELATIVE:
        raise ConfigurationError(
            f"Only relative paths are supported as entry points: {specifier}",
            identifier=specifier,
        )

    return kind


def relative_import_specifier(name: str, level: int, suffix: str = '.py') -> str:
    """
    Turn a Python relative import into a relative specifier.

    level 1 is the importer's directory, each extra level climbs one
    directory: (name='b', level=1) -> './b.py', (name='pkg.c', level=2)
    -> '../pkg/c.py'.
    """
    if level < 1:
        raise ConfigurationError(f"Not a relative import: level={level}")

    prefix = './' if level == 1 else '../' * (level - 1)
    return prefix + name.replace('.', '/') + suffix


def import_requests(tree: ast.AST, suffix: str = '.py') -> List[str]:
    """
    Collect every static import in a parsed module.

    Walks the whole tree, so imports nested inside functions and classes are
    linked up front along with the top-level ones.

    Returns:
        Specifiers, top-level statements first in source order, without
        duplicates
    """
    requests: List[str] = []

    def add(specifier: str) -> None:
        if specifier not in requests:
            requests.append(specifier)

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                add(alias.name)
                # `import os.path` binds `os`
                if '.' in alias.name:
                    add(alias.name.split('.')[0])

        elif isinstance(node, ast.ImportFrom):
            if node.level == 0:
                add(node.module)
            elif node.module:
                add(relative_import_specifier(node.module, node.level, suffix))
            else:
                for alias in node.names:
                    if alias.name == '*':
                        raise ConfigurationError(
                            "Wildcard import from a directory is not supported "
                            f"(line {node.lineno})"
                        )
                    add(relative_import_specifier(alias.name, node.level, suffix))

    return requests
