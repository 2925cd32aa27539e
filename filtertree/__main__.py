"""Allow ``python -m filtertree``."""

import sys

from filtertree.cli import main

sys.exit(main())
