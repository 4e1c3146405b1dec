import sys

from pkgvault.cli import main

sys.exit(main())
