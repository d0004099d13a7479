"""
Integration tests for the parking slot index

These tests wire real components together: the service and session over a
real tree, the spreadsheet and SQLite stores on temporary files, and the
console menu driven by scripted input.
"""

import sys
from pathlib import Path

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))
