"""
Stock Kernel

Persistence, domain value objects, typed errors and structured logging for
a paddy and rice stock ledger in which:
- every balance is derived from the movement log, never stored
- paddy movements pass an approval gate before they count
- resolved movements are immutable; corrections are new movements
- writes serialize per aggregate key
"""

__version__ = "0.1.0"
