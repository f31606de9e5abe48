from .sweeper import ExpiredTokenSweeper
from .token_ledger import TokenLedger, utc_now

__all__ = ["ExpiredTokenSweeper", "TokenLedger", "utc_now"]
