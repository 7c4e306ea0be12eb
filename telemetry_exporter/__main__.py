import sys

from telemetry_exporter.cli import main

sys.exit(main())
