from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from fintrack.config import get_settings
from fintrack.db.core import init_db, session_local
from fintrack.db.reference_data import seed_reference_data
from fintrack.errors import FinanceError
from fintrack.logging_config import setup_logging, get_logger
from fintrack.routers.auth import router as auth_router
from fintrack.routers.users import router as users_router
from fintrack.routers.accounts import router as accounts_router
from fintrack.routers.transactions import router as transactions_router
from fintrack.routers.categories import router as categories_router
from fintrack.routers.budgets import router as budgets_router
from fintrack.routers.portfolio import router as portfolio_router
from fintrack.routers.dashboard import router as dashboard_router

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    db = session_local()
    try:
        seed_reference_data(db)
    finally:
        db.close()
    logger.info("Database tables ready")
    yield


app = FastAPI(title="fintrack", lifespan=lifespan)


# ===== ERROR HANDLERS =====

@app.exception_handler(FinanceError)
async def finance_error_handler(request: Request, exc: FinanceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details},
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": "Resource already exists"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    message = "Internal server error" if get_settings().is_production else str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message})


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(categories_router)
app.include_router(budgets_router)
app.include_router(portfolio_router)
app.include_router(dashboard_router)


@app.get("/")
def read_root():
    return "Server is running."


@app.get("/health")
def health():
    return {"status": "OK", "environment": get_settings().environment}
