import sys

from repair_harness.cli import main

sys.exit(main())
