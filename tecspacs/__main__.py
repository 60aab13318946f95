import sys

from tecspacs.main import main

sys.exit(main())
