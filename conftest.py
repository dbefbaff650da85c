"""
Pytest configuration for the Rancher Fleet Hub test suite.

The hub is laid out as top-level modules under src/, so src/ is put on
sys.path for tests to import them directly (e.g. `from registry import ...`).
"""

import os
import sys

ROOT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(ROOT_DIR, "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)
