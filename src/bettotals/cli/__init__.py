"""Command line interface for bettotals (`python -m bettotals.cli`)."""
