import sys

from simcam.module import main

sys.exit(main())
