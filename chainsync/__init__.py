"""
chainsync.

Mirrors launchpad token launches and AMM swap events into a relational
store with reorg protection, idempotent writes and gap auditing.
"""

__version__ = "1.0.0"
