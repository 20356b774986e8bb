"""Allow ``python -m allnews``."""

import sys

from allnews.cli import main

sys.exit(main())
