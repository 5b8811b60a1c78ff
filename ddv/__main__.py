"""Allow ``python -m ddv``."""

import sys

from ddv.cli import main

sys.exit(main())
