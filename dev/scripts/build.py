#!/usr/bin/env python3
"""Go Serverless Function Builder - Entry Point."""
import sys

# Add the scripts directory to path for the nowgo package
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent))

from nowgo.build import main

if __name__ == "__main__":
    sys.exit(main())
