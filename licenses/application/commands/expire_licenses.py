"""
ExpireOverdueLicensesCommand.

Sweeps active licenses whose expiry has passed.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class ExpireOverdueLicensesCommand:
    """Command to expire overdue licenses in one batch."""

    batch_size: int = 500
    dry_run: bool = False
    now: Optional[datetime] = None
