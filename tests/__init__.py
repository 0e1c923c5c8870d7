"""
Test suite for Module Worlds.

Test structure:
- unit/ - Unit tests (fast, isolated)
- integration/ - Integration tests (whole worlds over fixture module graphs)
- fixtures/ - Fixture module graphs and helpers

Run tests:
    pytest                    # All tests
    pytest tests/unit         # Unit tests only
    pytest tests/integration  # Integration tests only
    pytest -k "cycle"         # Tests matching name

Philosophy:
    One module instance per world, and nothing shared across worlds.
    Every test that loads code builds its own world.
"""
