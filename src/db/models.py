from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Integer, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class LedgerEntryOrm(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    source_lamports: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    quote_value: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    destination: Mapped[str | None] = mapped_column(String, nullable=True)
    signature: Mapped[str | None] = mapped_column(String, nullable=True)


class ReconciliationOrm(Base):
    __tablename__ = "reconciliations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    income: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expenses: Mapped[int] = mapped_column(BigInteger, nullable=False)
    withdrawals: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deposits: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mark_to_market_adjustment: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expected: Mapped[int] = mapped_column(BigInteger, nullable=False)
    actual: Mapped[int] = mapped_column(BigInteger, nullable=False)
    difference: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tolerance: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
