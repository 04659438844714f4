"""Tests for the SQLAlchemy storage handle."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

import database
from database import Database, DatabaseError
from schemas import ExpenseEntryCreate, WageEntryCreate


def add_expense(db, amount, day, category="Food", description="Groceries"):
    return db.add_expense(ExpenseEntryCreate(amount=amount, description=description, category=category, date=day))


class TestLifecycle:

    def test_session_requires_open(self):
        with pytest.raises(DatabaseError):
            Database("sqlite://").session()

    def test_context_manager(self):
        with Database("sqlite://") as db:
            assert len(db.categories()) == 5
        assert db.engine is None

    def test_file_database_creates_directory(self, tmp_path):
        path = tmp_path / "nested" / "tool.db"
        with Database(f"sqlite:///{path}") as db:
            db.add_wage(WageEntryCreate(monthly_amount=100, effective_date=date(2024, 1, 1)))
        assert path.exists()
        with Database(f"sqlite:///{path}") as db:
            assert db.current_wage().monthly_amount == 100
            assert len(db.categories()) == 5

    def test_failed_open_can_be_retried(self, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("CREATE TABLE", {}, Exception("disk I/O error"))

        db = Database("sqlite://")
        monkeypatch.setattr(database.Base.metadata, "create_all", broken)
        with pytest.raises(DatabaseError):
            db.open()
        assert db.engine is None

        monkeypatch.undo()
        with db:
            assert len(db.categories()) == 5

    def test_open_twice_is_harmless(self, db):
        db.open()
        assert len(db.categories()) == 5


class TestCategories:

    def test_seeded_defaults_sorted(self, db):
        categories = db.categories()
        assert [c.name for c in categories] == ["Entertainment", "Food", "Housing", "Transportation", "Utilities"]
        food = next(c for c in categories if c.name == "Food")
        assert food.color == "#10B981"


class TestWages:

    def test_no_wage(self, db):
        assert db.current_wage() is None
        assert db.wage_history() == []

    def test_add_wage(self, db):
        wage = db.add_wage(WageEntryCreate(monthly_amount=4200, effective_date=date(2024, 2, 1), description="Raise"))
        assert wage.id is not None
        assert wage.monthly_amount == 4200
        assert wage.description == "Raise"
        assert wage.created_at is not None
        assert wage.annual_amount == 50400

    def test_created_at_is_naive_utc(self, db):
        added = db.add_wage(WageEntryCreate(monthly_amount=1500, effective_date=date(2024, 1, 1)))
        stored = db.current_wage()
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        assert added.created_at.tzinfo is None
        assert stored.created_at == added.created_at
        assert abs(now - stored.created_at) < timedelta(minutes=1)

    def test_current_is_latest_effective(self, db):
        db.add_wage(WageEntryCreate(monthly_amount=3000, effective_date=date(2024, 3, 1)))
        db.add_wage(WageEntryCreate(monthly_amount=2500, effective_date=date(2023, 1, 1)))
        assert db.current_wage().monthly_amount == 3000

    def test_ties_broken_by_creation(self, db):
        db.add_wage(WageEntryCreate(monthly_amount=3000, effective_date=date(2024, 3, 1)))
        db.add_wage(WageEntryCreate(monthly_amount=3100, effective_date=date(2024, 3, 1)))
        assert db.current_wage().monthly_amount == 3100

    def test_history_order(self, db):
        for amount, day in [(2000, date(2022, 1, 1)), (3000, date(2024, 1, 1)), (2500, date(2023, 1, 1))]:
            db.add_wage(WageEntryCreate(monthly_amount=amount, effective_date=day))
        assert [w.monthly_amount for w in db.wage_history()] == [3000, 2500, 2000]


class TestExpenses:

    def test_add_expense_trims_description(self, db):
        expense = add_expense(db, 12.5, date(2024, 1, 3), description="  Coffee beans  ")
        assert expense.description == "Coffee beans"
        assert expense.category == "Food"
        assert expense.date == date(2024, 1, 3)

    def test_recent_expenses_order_and_limit(self, db):
        add_expense(db, 10, date(2024, 1, 1))
        add_expense(db, 20, date(2024, 1, 3))
        add_expense(db, 30, date(2024, 1, 2))
        add_expense(db, 40, date(2024, 1, 3))
        assert [e.amount for e in db.recent_expenses()] == [40, 20, 30, 10]
        assert [e.amount for e in db.recent_expenses(limit=2)] == [40, 20]

    def test_expenses_between_inclusive(self, db):
        add_expense(db, 1, date(2023, 12, 31))
        add_expense(db, 2, date(2024, 1, 1))
        add_expense(db, 3, date(2024, 1, 31))
        add_expense(db, 4, date(2024, 2, 1))
        found = db.expenses_between(date(2024, 1, 1), date(2024, 1, 31))
        assert [e.amount for e in found] == [2, 3]

    def test_to_transaction(self, db):
        expense = add_expense(db, 75, date(2024, 1, 9), category="Utilities", description="Power")
        t = expense.to_transaction()
        assert t.type == "expense"
        assert t.amount == 75
        assert t.category == "Utilities"
        assert t.date == date(2024, 1, 9)
