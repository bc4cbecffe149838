"""
Bill Tracker - Source Package

Ledger synchronization and aggregation for small-business bill tracking.

DESIGN PRINCIPLES:
1. The live feed is the only source of truth for the ledger
2. Totals are always derived from the snapshot currently exposed
3. One bad record never blanks the whole ledger
4. Every write is validated before it leaves the process
5. Storage and blob backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Bill Tracker Team"
