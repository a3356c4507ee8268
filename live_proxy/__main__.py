import sys

from live_proxy.cli import main

sys.exit(main())
