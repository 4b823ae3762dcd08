"""
Pytest configuration for project root.

Ensures the taskmill package and the tests package can be imported in
tests, including from worker processes started with spawn/forkserver.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))
