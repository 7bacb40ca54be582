import sys

from log_poller.poller import main

sys.exit(main())
