"""Entry point for ``python -m railstack``."""

import sys

from railstack.cli import main

sys.exit(main())
