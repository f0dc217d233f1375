import sys

from alloc_sim.cli import main

sys.exit(main())
