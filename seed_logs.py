#!/usr/bin/env python3
"""
Sample Processing Log Seeder

Writes realistic processing log rows into the log store so the browser
and the statistics panel have something to show in development:
1. Successful orders (email -> attachments -> AI parsing -> sync)
2. Failed AI parsing runs
3. Customer sync errors
4. Informational progress records

Usage:
    python seed_logs.py --count 60
    python seed_logs.py --count 200 --days 3 --create-tables
"""

import argparse
import asyncio
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from pipeline_logs.core.config import get_settings
from pipeline_logs.db.session import close_db, create_tables, init_db
from pipeline_logs.models.processing_log import ProcessingLog
from pipeline_logs.schemas.log_schemas import OrderStatus
from pipeline_logs.schemas.query import LogStage, LogStatus

SENDERS = [
    "orders@acme-hardware.com",
    "purchasing@northwind.co.nz",
    "buyer@bluegum-supplies.com.au",
    "no-reply@tradepartner.io",
]

FILES = ["PO-{n}.pdf", "order_{n}.xlsx", "purchase-order-{n}.csv", "scan_{n}.png"]


def build_log(processed_at: datetime) -> Dict[str, Any]:
    """Build one random but internally consistent processing log row."""
    stage = random.choice(list(LogStage))
    status = random.choices(
        [LogStatus.SUCCESS, LogStatus.INFO, LogStatus.ERROR], weights=[6, 3, 2]
    )[0]
    number = random.randint(1000, 9999)

    lines = [f"{processed_at.isoformat()} received email"]
    if stage != LogStage.PROCESSING_EMAIL:
        lines.append(f"{processed_at.isoformat()} extracted attachment")
    if status == LogStatus.ERROR:
        lines.append(f"{processed_at.isoformat()} {stage.value} failed")

    linked = (
        stage in (LogStage.UNLEASHED_SYNC, LogStage.CUSTOMER_SYNC) and status != LogStatus.ERROR
    )

    return {
        "processed_at": processed_at,
        "from_email": random.choice(SENDERS),
        "file_name": random.choice(FILES).format(n=number) if random.random() > 0.1 else None,
        "stage": stage.value,
        "status": status.value,
        "order_status": random.choice(OrderStatus.values()) if linked else None,
        "purchase_order_guid": str(uuid.uuid4()) if linked else None,
        "purchase_ref": str(uuid.uuid4()) if linked else None,
        "log_lines": lines,
    }


def build_logs(count: int, days: int) -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    span = timedelta(days=days).total_seconds()
    return [
        build_log(now - timedelta(seconds=random.uniform(0, span)))
        for _ in range(count)
    ]


async def seed(count: int, days: int, make_tables: bool) -> int:
    session_factory = init_db()
    try:
        if make_tables:
            await create_tables()

        rows = build_logs(count, days)
        async with session_factory() as session:
            session.add_all(ProcessingLog(**row) for row in rows)
            await session.commit()
        return len(rows)
    finally:
        await close_db()


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Seed sample processing logs into the log store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--count", type=int, default=60, help="Number of rows to write")
    parser.add_argument("--days", type=int, default=1, help="Spread rows over the last N days")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create tables before seeding"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args()
    if args.seed is not None:
        random.seed(args.seed)

    settings = get_settings()
    print(f"Seeding {args.count} logs into {settings.database_url}")

    written = await seed(args.count, args.days, args.create_tables)

    api_url = f"http://{settings.host}:{settings.port}"
    print(f"Wrote {written} processing logs")
    print(f"  View API: curl -H 'Authorization: Bearer <token>' {api_url}/api/v1/logs")
    return 0


if __name__ == "__main__":
    exit(asyncio.run(main()))
