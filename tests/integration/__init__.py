"""Integration tests: full worlds loaded from tests/fixtures/worlds."""
