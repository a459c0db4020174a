"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- check: Test the API connection
- overview: Instance info, accounts and recent transactions
- accounts / transactions / budgets / categories: List records
- import-categories: Bulk-create categories from a JSON file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
