"""
Logistics CLI -- operate the consistency engine from a shell.

Schema setup, inventory listing and reconciliation, accounting summaries,
performance statistics and operator accounts.  Every command prints the
gateway's OperationResult as JSON.

Entry point: ``logistics-cli`` or ``python -m scripts.cli.main``
"""

from scripts.cli.main import main

__all__ = ["main"]
