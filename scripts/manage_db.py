#!/usr/bin/env python3
"""
Database and business rules management script for the membership queue engine.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from rich.console import Console
from rich.table import Table

from alembic.config import Config
from alembic import command
from membership_queue.core.database import init_database, close_database, DatabaseManager
from membership_queue.core.logging import setup_logging, get_logger
from membership_queue.services.ledger import SqlLedger
from membership_queue.services.membership_queue_service import MembershipQueueService

console = Console()
logger = get_logger(__name__)
app = typer.Typer(help="Database and business rules commands")


def _cents(amount: int) -> str:
    return f"${amount / 100:,.2f}"


@app.command()
def init():
    """Initialize database with tables."""
    async def _init():
        setup_logging()
        await init_database()
        await DatabaseManager.create_tables()
        await close_database()
        console.print("✅ Database initialized successfully!")

    asyncio.run(_init())


@app.command()
def upgrade(revision: str = "head"):
    """Apply migrations."""
    alembic_cfg = Config("alembic.ini")
    command.upgrade(alembic_cfg, revision)

    console.print(f"✅ Database upgraded to: {revision}")


@app.command()
def downgrade(revision: str):
    """Downgrade database to specific revision."""
    alembic_cfg = Config("alembic.ini")
    command.downgrade(alembic_cfg, revision)

    console.print(f"⬇️ Database downgraded to: {revision}")


@app.command()
def current():
    """Show current database revision."""
    alembic_cfg = Config("alembic.ini")
    command.current(alembic_cfg)


@app.command()
def reset():
    """Drop all tables. Members, payments and the queue are lost."""
    if not typer.confirm("Drop the member, payment and queue tables?"):
        console.print("❌ Operation cancelled")
        return

    async def _reset():
        setup_logging()
        await init_database()
        try:
            await DatabaseManager.drop_tables()
        finally:
            await close_database()

    asyncio.run(_reset())
    console.print("🗑️ All tables dropped!")


@app.command()
def health():
    """Check database health."""
    async def _health() -> bool:
        setup_logging()
        await init_database()
        try:
            return await DatabaseManager.health_check()
        finally:
            await close_database()

    if asyncio.run(_health()):
        console.print("✅ Database is healthy!")
    else:
        console.print("❌ Database health check failed!")
        raise typer.Exit(code=1)


@app.command()
def enforce():
    """Deactivate members in payment default and remove them from the queue."""
    async def _enforce():
        setup_logging()
        await init_database()
        try:
            service = MembershipQueueService(SqlLedger())
            return await service.enforce_payment_defaults()
        finally:
            await close_database()

    report = asyncio.run(_enforce())

    if report.error:
        console.print(f"❌ Enforcement aborted: {report.error}")
        raise typer.Exit(code=1)

    console.print(
        f"Scanned {report.scanned} active member(s), {report.defaulted} in default: "
        f"{report.updated} deactivated, {report.removed} removed from queue"
    )
    if report.failed_member_ids:
        console.print(f"⚠️ Failed for member(s): {', '.join(map(str, report.failed_member_ids))}")
        raise typer.Exit(code=1)


@app.command()
def sync():
    """Rank members and rewrite the queue."""
    async def _sync():
        setup_logging()
        await init_database()
        try:
            service = MembershipQueueService(SqlLedger())
            success = await service.sync_queue_positions()
            return success, service.last_sync
        finally:
            await close_database()

    success, report = asyncio.run(_sync())

    if success:
        console.print(f"✅ Queue synced: {report.upserted} position(s), {report.removed} stale entr(ies) removed")
        return

    if report.error:
        console.print(f"❌ Queue sync aborted: {report.error}")
    else:
        console.print(f"⚠️ Queue sync failed for member(s): {', '.join(map(str, report.failed_member_ids))}")
    raise typer.Exit(code=1)


@app.command("payout-status")
def payout_status(show_queue: bool = typer.Option(False, "--queue", help="Also print the winner order")):
    """Show payout readiness."""
    async def _status():
        setup_logging()
        await init_database()
        try:
            service = MembershipQueueService(SqlLedger())
            status = await service.compute_payout_status()
            ranked = await service.compute_winner_order() if show_queue else []
            return status, ranked
        finally:
            await close_database()

    status, ranked = asyncio.run(_status())

    table = Table(title="Payout Status")
    table.add_column("Check", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total revenue", _cents(status.total_revenue))
    table.add_row("Threshold", f"{_cents(status.payout_threshold)} ({status.fund_progress:.2f}%)")
    table.add_row("Fund ready", "✅" if status.fund_ready else "❌")
    table.add_row("Time ready", "✅" if status.time_ready else "❌")
    table.add_row(
        "Days until eligible",
        "unknown" if status.days_until_eligible is None else str(status.days_until_eligible)
    )
    table.add_row("Potential winners", str(status.potential_winners))
    table.add_row("Payout ready", "✅" if status.payout_ready else "❌")
    console.print(table)

    if status.degraded:
        console.print("⚠️ Ledger unavailable, showing defaults")

    if show_queue:
        queue = Table(title="Winner Order")
        queue.add_column("#", style="cyan")
        queue.add_column("Member")
        queue.add_column("Tenure start")
        queue.add_column("Months", justify="right")
        queue.add_column("Total paid", justify="right")

        for member in ranked:
            queue.add_row(
                str(member.queue_position),
                f"{member.member_name} ({member.member_id})",
                member.tenure_start.date().isoformat(),
                str(member.continuous_tenure_months),
                _cents(member.total_paid)
            )
        console.print(queue)


if __name__ == "__main__":
    app()
