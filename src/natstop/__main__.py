"""Allow running natstop with ``python -m natstop``."""

import sys

from natstop.app import main

if __name__ == "__main__":
    sys.exit(main())
