"""Allow ``python -m bitauth``."""

import sys

from bitauth.cli import main

sys.exit(main())
