"""Unit tests for Module Worlds.

Fast, isolated tests for individual components.
Filesystem access is limited to temporary directories.
"""
