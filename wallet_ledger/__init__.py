"""
Wallet ledger.

Financial ledger and referral commission cascade engine.
"""

__version__ = "0.1.0"
