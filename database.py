"""
Relational storage for wages, expenses and categories.

``Database`` is constructed explicitly and handed to whoever needs it; there is
no module-level connection.
"""
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String, Text, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from schemas import (
    DEFAULT_CATEGORY_COLORS,
    Category,
    ExpenseEntry,
    ExpenseEntryCreate,
    WageEntry,
    WageEntryCreate,
)

logger = logging.getLogger("financial_tool.database")

DEFAULT_DATABASE_URL = "sqlite:///./database/financial-tool.db"

Base = declarative_base()


def _utcnow() -> datetime:
    # stored as naive UTC, the form SQLite returns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class WageRow(Base):
    __tablename__ = "wages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monthly_amount = Column(Float, nullable=False)
    effective_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_expenses_date", "date"),
        Index("idx_expenses_category", "category"),
    )


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    color = Column(String(16), nullable=False, default="#6B7280")
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class DatabaseError(Exception):
    """Storage failure with a message safe to show to API clients."""


def _wage(row: WageRow) -> WageEntry:
    return WageEntry(
        id=row.id,
        monthly_amount=row.monthly_amount,
        effective_date=row.effective_date,
        description=row.description,
        created_at=row.created_at,
    )


def _expense(row: ExpenseRow) -> ExpenseEntry:
    return ExpenseEntry(
        id=row.id,
        amount=row.amount,
        description=row.description,
        category=row.category,
        date=row.date,
        created_at=row.created_at,
    )


class Database:
    def __init__(self, url: Optional[str] = None):
        self.url = url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        self.engine = None
        self._sessions = None

    # ---------- Lifecycle ----------

    def open(self) -> "Database":
        if self.engine is not None:
            return self
        kwargs = {}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            path = self.url.split(":///", 1)[-1] if ":///" in self.url else ""
            if path and path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            else:
                # a single shared connection keeps the in-memory database alive
                kwargs["poolclass"] = StaticPool
        try:
            self.engine = create_engine(self.url, **kwargs)
            Base.metadata.create_all(self.engine)
            self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
            self._seed_categories()
        except SQLAlchemyError as e:
            logger.exception("Database initialization failed")
            if self.engine is not None:
                self.engine.dispose()
            self.engine = None
            self._sessions = None
            raise DatabaseError(f"Database setup failed: {e}") from e
        logger.info("Database initialized at %s", self.engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self._sessions = None
            logger.info("Database connection closed")

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

    def session(self) -> Session:
        if self._sessions is None:
            raise DatabaseError("Database not initialized. Call open() first.")
        return self._sessions()

    def _seed_categories(self) -> None:
        with self.session() as s:
            existing = set(s.scalars(select(CategoryRow.name)))
            for name, color in DEFAULT_CATEGORY_COLORS.items():
                if name not in existing:
                    s.add(CategoryRow(name=name, color=color))
            s.commit()

    # ---------- Wages ----------

    def add_wage(self, entry: WageEntryCreate) -> WageEntry:
        try:
            with self.session() as s:
                row = WageRow(
                    monthly_amount=entry.monthly_amount,
                    effective_date=entry.effective_date,
                    description=entry.description or None,
                )
                s.add(row)
                s.commit()
                wage = _wage(row)
        except SQLAlchemyError as e:
            logger.exception("Error adding wage entry")
            raise DatabaseError("Failed to add wage entry") from e
        logger.info("Wage entry %s added", wage.id)
        return wage

    def current_wage(self) -> Optional[WageEntry]:
        history = self._wages(limit=1)
        return history[0] if history else None

    def wage_history(self) -> List[WageEntry]:
        return self._wages()

    def _wages(self, limit: Optional[int] = None) -> List[WageEntry]:
        stmt = select(WageRow).order_by(
            WageRow.effective_date.desc(), WageRow.created_at.desc(), WageRow.id.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self.session() as s:
                return [_wage(r) for r in s.scalars(stmt)]
        except SQLAlchemyError as e:
            logger.exception("Error fetching wages")
            raise DatabaseError("Failed to retrieve wage information") from e

    # ---------- Expenses ----------

    def add_expense(self, entry: ExpenseEntryCreate) -> ExpenseEntry:
        try:
            with self.session() as s:
                row = ExpenseRow(
                    amount=entry.amount,
                    description=entry.description.strip(),
                    category=entry.category.strip(),
                    date=entry.date,
                )
                s.add(row)
                s.commit()
                expense = _expense(row)
        except SQLAlchemyError as e:
            logger.exception("Error adding expense entry")
            raise DatabaseError("Failed to add expense entry") from e
        logger.info("Expense entry %s added (%s %.2f)", expense.id, expense.category, expense.amount)
        return expense

    def recent_expenses(self, limit: int = 30) -> List[ExpenseEntry]:
        stmt = (
            select(ExpenseRow)
            .order_by(ExpenseRow.date.desc(), ExpenseRow.created_at.desc(), ExpenseRow.id.desc())
            .limit(limit)
        )
        return self._expenses(stmt)

    def expenses_between(self, start: date, end: date) -> List[ExpenseEntry]:
        stmt = (
            select(ExpenseRow)
            .where(ExpenseRow.date >= start, ExpenseRow.date <= end)
            .order_by(ExpenseRow.date, ExpenseRow.id)
        )
        return self._expenses(stmt)

    def _expenses(self, stmt) -> List[ExpenseEntry]:
        try:
            with self.session() as s:
                return [_expense(r) for r in s.scalars(stmt)]
        except SQLAlchemyError as e:
            logger.exception("Error fetching expenses")
            raise DatabaseError("Failed to retrieve expenses") from e

    # ---------- Categories ----------

    def categories(self) -> List[Category]:
        try:
            with self.session() as s:
                rows = s.scalars(select(CategoryRow).order_by(CategoryRow.name))
                return [Category(id=r.id, name=r.name, color=r.color) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("Error fetching categories")
            raise DatabaseError("Failed to retrieve categories") from e
