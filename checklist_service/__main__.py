import sys

from checklist_service.server import main

sys.exit(main())
