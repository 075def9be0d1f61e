"""
Signal Swap Bot

Turns bullish/bearish trend signals into Jupiter swaps between USDC and SOL,
signed with a single held key and confirmed on-chain, and classifies a
wallet's transaction history into swaps, transfers and fee payments.
"""

__version__ = "0.1.0"
