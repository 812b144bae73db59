import sys

from snb_loader.cli import main

sys.exit(main())
