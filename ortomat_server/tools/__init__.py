"""
Tools module for Ortomat.

Contains:
- backup_cli: Offline export/restore of the database
- seed: Demo data for a fresh database
"""

from .backup_cli import main
from .seed import build_demo_data, seed_demo_data

__all__ = ["main", "build_demo_data", "seed_demo_data"]
