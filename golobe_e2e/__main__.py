import sys

from golobe_e2e.cli import main

sys.exit(main())
