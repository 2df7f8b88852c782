import sys

from docmigrate.cli import main

sys.exit(main())
