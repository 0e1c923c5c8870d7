"""
module-worlds command line

Loads an entry point into a fresh world and prints its exports.

Usage:
    module-worlds ./index.py
    module-worlds ./plugin/main.py --base-dir /srv/plugins --host-module json
    module-worlds ./index.py --log-dir data

Each export is printed as name<TAB>repr(value). Exits 1 if the world fails
to load.
"""

import asyncio
import sys
from typing import List, Optional

from .core.errors import WorldError
from .runtime.world import create_world


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Load a module graph into an isolated world')
    parser.add_argument('entry', help='Relative path to the entry module (e.g. ./index.py)')
    parser.add_argument('--base-dir', default=None, help='Directory entry is relative to (default: cwd)')
    parser.add_argument('--log-dir', default=None, help='Write world logs under this directory')
    parser.add_argument(
        '--host-module',
        action='append',
        dest='host_modules',
        default=None,
        help='Allow a top-level host package (repeatable, default: allow all)',
    )

    args = parser.parse_args(argv)

    try:
        namespace = asyncio.run(create_world(
            args.entry,
            base_dir=args.base_dir,
            log_dir=args.log_dir,
            host_modules=args.host_modules,
        ))
    except WorldError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    for name, value in namespace.items():
        print(f"{name}\t{value!r}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
