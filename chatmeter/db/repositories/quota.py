"""
Usage counter and ledger repository.

Counter rows are created with an insert-if-absent and then advanced with a
single ``UPDATE ... SET col = col + :delta`` so concurrent writers add up
instead of overwriting each other. Nothing here commits; the caller owns
the unit of work.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatmeter.db.models import DailyCounter, MonthlyCounter, UsageLedgerEntry


def _insert_if_absent(db: Session, model: type, values: dict[str, Any]) -> None:
    """Create a counter row unless its unique key already exists."""
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    else:
        try:
            with db.begin_nested():
                db.execute(insert(model).values(**values))
        except IntegrityError:
            pass  # Row created concurrently
        return

    db.execute(dialect_insert(model).values(**values).on_conflict_do_nothing())


def get_daily_counter(db: Session, user_id: str, day_utc: date) -> DailyCounter | None:
    """Get the daily counter for a user/day."""
    stmt = select(DailyCounter).where(
        DailyCounter.user_id == user_id, DailyCounter.day_utc == day_utc
    ).execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def get_monthly_counter(db: Session, user_id: str, cycle_key: str) -> MonthlyCounter | None:
    """Get the monthly counter for a user/billing cycle."""
    stmt = select(MonthlyCounter).where(
        MonthlyCounter.user_id == user_id, MonthlyCounter.cycle_key == cycle_key
    ).execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def increment_daily_counter(
    db: Session,
    user_id: str,
    day_utc: date,
    *,
    requests: int,
    credits: Decimal,
) -> None:
    """Atomically add requests/credits to a user's daily counter."""
    _insert_if_absent(db, DailyCounter, {"user_id": user_id, "day_utc": day_utc})
    db.execute(
        update(DailyCounter)
        .where(DailyCounter.user_id == user_id, DailyCounter.day_utc == day_utc)
        .values(
            request_count=DailyCounter.request_count + requests,
            credits_used=DailyCounter.credits_used + credits,
        )
        .execution_options(synchronize_session=False)
    )


def increment_monthly_counter(
    db: Session,
    user_id: str,
    cycle_key: str,
    *,
    requests: int,
    credits: Decimal,
) -> None:
    """Atomically add requests/credits to a user's monthly counter."""
    _insert_if_absent(db, MonthlyCounter, {"user_id": user_id, "cycle_key": cycle_key})
    db.execute(
        update(MonthlyCounter)
        .where(MonthlyCounter.user_id == user_id, MonthlyCounter.cycle_key == cycle_key)
        .values(
            request_count=MonthlyCounter.request_count + requests,
            credits_used=MonthlyCounter.credits_used + credits,
        )
        .execution_options(synchronize_session=False)
    )


def set_daily_counter(
    db: Session, user_id: str, day_utc: date, *, requests: int, credits: Decimal
) -> None:
    """Overwrite a daily counter with absolute totals."""
    _insert_if_absent(db, DailyCounter, {"user_id": user_id, "day_utc": day_utc})
    db.execute(
        update(DailyCounter)
        .where(DailyCounter.user_id == user_id, DailyCounter.day_utc == day_utc)
        .values(request_count=requests, credits_used=credits)
        .execution_options(synchronize_session=False)
    )


def set_monthly_counter(
    db: Session, user_id: str, cycle_key: str, *, requests: int, credits: Decimal
) -> None:
    """Overwrite a monthly counter with absolute totals."""
    _insert_if_absent(db, MonthlyCounter, {"user_id": user_id, "cycle_key": cycle_key})
    db.execute(
        update(MonthlyCounter)
        .where(MonthlyCounter.user_id == user_id, MonthlyCounter.cycle_key == cycle_key)
        .values(request_count=requests, credits_used=credits)
        .execution_options(synchronize_session=False)
    )


def append_ledger_entry(
    db: Session,
    user_id: str,
    *,
    day_utc: date,
    cycle_key: str,
    model_key: str,
    credits: Decimal,
    message_id: str | None = None,
) -> UsageLedgerEntry:
    """Append one usage charge. Ledger rows are never updated."""
    entry = UsageLedgerEntry(
        user_id=user_id,
        day_utc=day_utc,
        cycle_key=cycle_key,
        model_key=model_key,
        request_count=1,
        credits=credits,
        message_id=message_id,
    )
    db.add(entry)
    db.flush()
    return entry


def _ledger_totals(db: Session, *criteria: Any) -> tuple[int, Decimal]:
    stmt = select(
        func.coalesce(func.sum(UsageLedgerEntry.request_count), 0),
        func.coalesce(func.sum(UsageLedgerEntry.credits), 0),
    ).where(*criteria)
    requests, credits = db.execute(stmt).one()
    return int(requests), Decimal(str(credits))


def sum_ledger_for_day(db: Session, user_id: str, day_utc: date) -> tuple[int, Decimal]:
    """Total requests and credits charged to a user on a UTC day."""
    return _ledger_totals(
        db, UsageLedgerEntry.user_id == user_id, UsageLedgerEntry.day_utc == day_utc
    )


def sum_ledger_for_cycle(db: Session, user_id: str, cycle_key: str) -> tuple[int, Decimal]:
    """Total requests and credits charged to a user in a billing cycle."""
    return _ledger_totals(
        db, UsageLedgerEntry.user_id == user_id, UsageLedgerEntry.cycle_key == cycle_key
    )


def list_ledger_entries(db: Session, user_id: str, *, limit: int = 200) -> list[UsageLedgerEntry]:
    """Most recent ledger entries for a user."""
    stmt = (
        select(UsageLedgerEntry)
        .where(UsageLedgerEntry.user_id == user_id)
        .order_by(UsageLedgerEntry.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
