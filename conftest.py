"""
Pytest configuration for Planboard.

This file is automatically loaded by pytest and puts the project root on the
Python path so ``shared``, ``services``, ``workers`` and ``scripts`` import
without installation.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
