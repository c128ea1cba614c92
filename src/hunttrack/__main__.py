"""Entry point for running as module: python -m hunttrack"""

import sys

from hunttrack.cli.commands import main

if __name__ == "__main__":
    sys.exit(main())
