"""Allow `python -m rollup`"""

import sys

from rollup.cli import main

sys.exit(main())
