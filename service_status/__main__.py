"""Allow running with: python -m service_status"""

import sys

from .status_generator import main

sys.exit(main())
