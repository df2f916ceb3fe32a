"""
Standard type definitions for database models.

Provides consistent types for on-chain amounts across all models.
"""

from sqlalchemy import DECIMAL, String

# Ether-denominated amounts converted from wei
# Precision: 36 digits total, 18 after decimal point
EtherType = DECIMAL(36, 18)

# Lowercase 0x-prefixed addresses
AddressType = String(42)

# 0x-prefixed 32-byte hashes (tx hash, block hash)
HashType = String(66)
