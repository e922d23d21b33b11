# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Entry point for running the tool as a module: python -m ninja_deps"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
