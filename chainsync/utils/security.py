"""
Masking helpers for log output.
"""


def mask_address(address: str | None) -> str:
    """
    Mask address for logging: 0x1234...5678

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_url(url: str | None) -> str:
    """
    Strip path and query (API keys) from an RPC URL.

    Examples:
        >>> mask_url("https://node.example.com/v1/secret-key")
        'https://node.example.com'
    """
    if not url:
        return "***"
    scheme, sep, rest = url.partition("://")
    if not sep:
        return "***"
    host = rest.split("/", 1)[0].split("?", 1)[0]
    return f"{scheme}://{host}"
