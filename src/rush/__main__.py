import sys

from rush.shell import main

sys.exit(main())
