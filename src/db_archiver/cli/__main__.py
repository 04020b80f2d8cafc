import sys

from db_archiver.cli import main

sys.exit(main())
