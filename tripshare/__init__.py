"""
TripShare - Source Package

A collaborative trip planner for small groups of friends travelling together:
shared expenses in several currencies, trip weather, and private memories
attached to itinerary items.

DESIGN PRINCIPLES:
1. Derived views (ledger, weather) are recomputed, never stored
2. Bad money data degrades to zero, it never crashes a page
3. One weather source failing must not hide the other
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "TripShare Team"
