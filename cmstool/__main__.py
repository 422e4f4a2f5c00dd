# *-* coding: utf-8 *-*
import sys

from cmstool.cli import main

sys.exit(main())
