"""
Action Triage - Entry Point.

Single entry point: `python main.py refresh` pulls new actions from Day.ai;
see `python main.py --help` for the other commands.
"""

import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from triage.cli import main

if __name__ == "__main__":
    sys.exit(main())
