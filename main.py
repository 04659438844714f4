import os
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from calculations import (
    annual_wage,
    detect_trend,
    evaluate_budgets,
    project_monthly_expenses,
    summarize,
    wage_income,
)
from database import Database, DatabaseError
from insights import generate_insights
from periods import DateRange, PeriodInfo, get_period_info, period_progress
from schemas import ExpenseEntryCreate, InsightsRequest, PeriodUnit, Transaction, WageEntry, WageEntryCreate

logger = logging.getLogger("financial_tool.api")

SERVICE_NAME = "Financial Tool API"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


# ---------- Utils ----------

def ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": jsonable_encoder(data)})


def fail(status_code: int, error: str, details: Optional[List[Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def camel(data: Any) -> Any:
    """Recursively convert dict keys produced by ``asdict`` to camelCase."""
    if isinstance(data, dict):
        return {to_camel(k): camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [camel(v) for v in data]
    return data


def dump(model) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def wage_payload(wage: Optional[WageEntry]) -> Optional[Dict[str, Any]]:
    if wage is None:
        return None
    return {**dump(wage), "annualAmount": annual_wage(wage)}


def period_payload(info: PeriodInfo) -> Dict[str, Any]:
    return camel(asdict(info))


def get_database(request: Request) -> Database:
    database = request.app.state.database
    if database is None:
        raise DatabaseError("Database not configured")
    return database


def load_transactions(
    db: Database, expenses_range: DateRange, income_range: DateRange, today: date
) -> List[Transaction]:
    """Stored expenses in ``expenses_range`` plus wage income for ``income_range`` up to ``today``."""
    expenses = [e.to_transaction() for e in db.expenses_between(expenses_range.start, expenses_range.end)]
    return expenses + wage_income(db.wage_history(), income_range, today)


router = APIRouter()


# ---------- Health ----------

@router.get("/api/health")
def health():
    return {"status": "ok", "service": SERVICE_NAME}


# ---------- Wages ----------

@router.get("/api/wage/current")
def get_current_wage(db: Database = Depends(get_database)):
    return ok(wage_payload(db.current_wage()))


@router.get("/api/wage/history")
def get_wage_history(db: Database = Depends(get_database)):
    return ok([wage_payload(w) for w in db.wage_history()])


@router.post("/api/wage")
def add_wage(payload: WageEntryCreate, db: Database = Depends(get_database)):
    return ok(wage_payload(db.add_wage(payload)), status_code=201)


# ---------- Categories & Expenses ----------

@router.get("/api/categories")
def list_categories(db: Database = Depends(get_database)):
    return ok([dump(c) for c in db.categories()])


@router.get("/api/expenses")
def list_expenses(limit: int = Query(30), db: Database = Depends(get_database)):
    if limit < 1 or limit > 100:
        raise ApiError(400, "Limit must be between 1 and 100")
    return ok([dump(e) for e in db.recent_expenses(limit)])


@router.post("/api/expenses")
def add_expense(payload: ExpenseEntryCreate, db: Database = Depends(get_database)):
    return ok(dump(db.add_expense(payload)), status_code=201)


# ---------- Summary, Trends & Insights ----------

@router.get("/api/summary")
def get_summary(period: PeriodUnit = Query("month"), db: Database = Depends(get_database)):
    today = date.today()
    info = get_period_info(period, today)
    transactions = load_transactions(db, info.current, info.current, today)
    data = {
        "period": period,
        **period_payload(info),
        "progress": period_progress(period, today),
        "summary": camel(asdict(summarize(transactions, info.current))),
    }
    if period == "month":
        data["projectedExpenses"] = project_monthly_expenses(transactions, today)
    return ok(data)


@router.get("/api/trends")
def get_trends(period: PeriodUnit = Query("month"), db: Database = Depends(get_database)):
    today = date.today()
    info = get_period_info(period, today)
    expenses = db.expenses_between(info.previous.start, info.current.end)
    trend = detect_trend([e.to_transaction() for e in expenses], period, today)
    return ok({"period": period, **period_payload(info), "trend": camel(asdict(trend))})


@router.post("/api/insights")
def get_insights(payload: InsightsRequest, db: Database = Depends(get_database)):
    today = date.today()
    info = get_period_info(payload.period, today)
    transactions = load_transactions(
        db, DateRange(info.previous.start, info.current.end), info.current, today
    )
    summary = summarize(transactions, info.current)
    budget_results = evaluate_budgets(transactions, payload.budgets, payload.period, today)
    trend = detect_trend(transactions, payload.period, today)
    return ok({
        "period": payload.period,
        **period_payload(info),
        "summary": camel(asdict(summary)),
        "budgets": [dump(b) for b in budget_results],
        "trend": camel(asdict(trend)),
        "insights": generate_insights(summary, budget_results, trend),
    })


# ---------- App ----------

def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        details = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
        return fail(400, "Invalid input data", jsonable_encoder(details))

    @app.exception_handler(ApiError)
    async def api_error(request: Request, exc: ApiError):
        return fail(exc.status_code, exc.message)

    @app.exception_handler(DatabaseError)
    async def database_error(request: Request, exc: DatabaseError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return fail(500, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return fail(404, "Endpoint not found")
        return fail(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return fail(500, "Internal server error")


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the API around ``database``.

    Without an injected handle one is opened from ``DATABASE_URL`` at startup
    and closed at shutdown.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.database is None
        if owned:
            app.state.database = Database()
        app.state.database.open()
        logger.info("%s ready", SERVICE_NAME)
        try:
            yield
        finally:
            if owned:
                app.state.database.close()
                app.state.database = None
            logger.info("%s shut down", SERVICE_NAME)

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.database = database

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
