"""Allow running as: python -m photomatch"""

import sys

from .cli import main

sys.exit(main())
