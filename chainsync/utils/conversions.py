"""
Conversions between on-chain values and stored values.
"""

from decimal import Decimal

WEI_PER_ETHER = Decimal(10**18)


def wei_to_ether(value: int) -> Decimal:
    """
    Convert an 18-decimals integer amount to ether units.

    Examples:
        >>> wei_to_ether(1500000000000000000)
        Decimal('1.5')
    """
    return Decimal(value) / WEI_PER_ETHER


def normalize_address(address: str) -> str:
    """Lowercase an address for storage and comparisons."""
    return address.strip().lower()


def normalize_hash(value: str | bytes) -> str:
    """
    Return a lowercase 0x-prefixed hex string for a hash.

    Accepts raw bytes (HexBytes) or hex strings with or without prefix.
    """
    if isinstance(value, bytes | bytearray):
        return "0x" + bytes(value).hex()
    text = value.lower()
    return text if text.startswith("0x") else f"0x{text}"
