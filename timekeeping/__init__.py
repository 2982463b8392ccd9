"""Project timer core - stopwatch sessions, commit and duration reconciliation"""

__version__ = "0.3.0"
