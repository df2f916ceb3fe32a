"""
Launchpad contract constants.

This module contains:
- Factory ABI (TokenLaunched event)
- AMM pool ABI (Swap event, reserve getters)
- Event signatures used as log topics
- Token supply used to derive launch reserves
"""

# Launchpad factory: emits one TokenLaunched per deployed token
FACTORY_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "tokenAddress", "type": "address"},
            {"indexed": True, "name": "ammAddress", "type": "address"},
            {"indexed": False, "name": "name", "type": "string"},
            {"indexed": False, "name": "symbol", "type": "string"},
            {"indexed": True, "name": "creator", "type": "address"},
            {"indexed": False, "name": "liquidityPercent", "type": "uint256"},
            {"indexed": False, "name": "initialLiquidityETH", "type": "uint256"},
        ],
        "name": "TokenLaunched",
        "type": "event",
    },
]

# Per-token AMM pool
AMM_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "user", "type": "address"},
            {"indexed": False, "name": "ethIn", "type": "uint256"},
            {"indexed": False, "name": "tokenIn", "type": "uint256"},
            {"indexed": False, "name": "ethOut", "type": "uint256"},
            {"indexed": False, "name": "tokenOut", "type": "uint256"},
        ],
        "name": "Swap",
        "type": "event",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "reserveToken",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "reserveETH",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

TOKEN_LAUNCHED_SIGNATURE = (
    "TokenLaunched(address,address,string,string,address,uint256,uint256)"
)
SWAP_SIGNATURE = "Swap(address,uint256,uint256,uint256,uint256)"

# Every launchpad token is minted with a fixed supply (whole tokens)
TOTAL_SUPPLY = 1_000_000
