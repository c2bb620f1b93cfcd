import sys

from covreport.cli import main

sys.exit(main())
