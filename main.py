#!/usr/bin/env python3
"""
SubReader Entry Point Script

This script initializes the CLI handler and opens a subtitle file in a reader session.
"""

import sys
from subreader.cli import CLIHandler

if __name__ == "__main__":
    if sys.version_info < (3, 9):
        sys.stderr.write("SubReader requires Python 3.9 or later.\n")
        sys.exit(1)

    cli = CLIHandler()
    cli.run()
