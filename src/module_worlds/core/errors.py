"""
World Errors

Every failure a world can raise while resolving, linking or evaluating a
module graph.

Design principles:
- One base class so embedders can catch everything with a single except
- Errors carry the specifier or module identifier that triggered them
- Host exceptions are wrapped with context, never swallowed
"""

from typing import Optional


class WorldError(Exception):
    """Base exception for world-related errors"""

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier


class ConfigurationError(WorldError):
    """Raised for entry points, specifiers or options the linker refuses"""
    pass


class NotFoundError(WorldError):
    """Raised when a source file or bare specifier can't be resolved"""
    pass


class CompileError(WorldError):
    """Raised when module source isn't valid Python"""
    pass


class EvaluationError(WorldError):
    """Raised when a module body, hook factory or host import fails"""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message, identifier)
        self.original = original
