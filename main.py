from __future__ import annotations

import sys

from apitest.cli import run


if __name__ == "__main__":
    sys.exit(run(sys.argv[1:]))
