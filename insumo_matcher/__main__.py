import sys

from insumo_matcher.cli import main

sys.exit(main())
