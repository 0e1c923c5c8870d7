"""
Test fixtures for module worlds

This package contains fixtures used for testing:
- Sample module graphs (basic, cycle, counter, hooks, dynamic, globals)
- Modules that fail in every way a world can fail (errors)
"""

import os

# Path to fixtures directory
FIXTURES_DIR = os.path.dirname(__file__)
WORLDS_DIR = os.path.join(FIXTURES_DIR, 'worlds')
