"""Allow ``python -m payroll_export``; runs the CLI."""

import sys

from payroll_export.cli import main

sys.exit(main())
