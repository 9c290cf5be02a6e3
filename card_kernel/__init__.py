"""
Card Kernel - legacy-parity core for card account management

A fixed-point financial core with:
- Legacy-compatible decimal arithmetic (scale 2, HALF_UP)
- Aggregated account/customer field validation
- Optimistic concurrency on account updates
- Audited mutations
"""

__version__ = "0.1.0"
