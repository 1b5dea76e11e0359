"""Recompute follower/following, reply and creator total counters from ledger rows.

Run: python scripts/reconcile_counters.py
"""
import asyncio
import os
import sys

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vidsphere.core.config import settings
from vidsphere.core.logging_config import configure_logging
from vidsphere.db.session import async_session_maker
from vidsphere.workers.reconciliation import reconcile_all


async def main() -> None:
    fixed = await reconcile_all(async_session_maker)
    print(
        f"Fixed {fixed['users']} user(s), {fixed['comments']} comment(s) "
        f"and {fixed['creators']} creator total(s)."
    )


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(main())
