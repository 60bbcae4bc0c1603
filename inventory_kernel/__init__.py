"""
Inventory Kernel

The authoritative core of the inventory dashboard:
- Quantity ledger with per-asset serialized claim/release
- Claim registry indexing open claims per asset
- Acquisition request lifecycle with compare-and-swap resolution
- Typed errors, structured logging, injectable clock
"""

__version__ = "0.1.0"
