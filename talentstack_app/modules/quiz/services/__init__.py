"""Learning backend implementations and hosted session bookkeeping."""
