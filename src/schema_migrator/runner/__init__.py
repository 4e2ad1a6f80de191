"""
CLI runner module.

Provides commands:
- migrate: Apply or revert migrations up to a target version
- status: List migrations and their applied state
- init: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
