"""
Module: main.py
Description: FastAPI application entry point with all API routes for the Finance Tracker.

This module provides REST API endpoints for:
    - Registration and login (JWT bearer tokens)
    - Transaction CRUD with CSV/JSON import and export
    - Savings goals with partial updates and completion tracking
    - Product recommendations from spending categories and goals

Dependencies:
    - FastAPI for REST API framework
    - SQLAlchemy for database operations
    - httpx for the optional Gemini keyword call

Usage:
    uvicorn main:app --reload --host 0.0.0.0 --port 8080
"""

from auth import get_current_user, create_access_token, register, login
from services.observability import logger, metrics
from services import (
    AccountStore, TransactionService, GoalService,
    RecommendationService, RecommendationRanker, QueryGenerator,
    ProductCatalog, load_catalog,
    ValidationError, NotFoundError, TransactionImportError,
)
from schemas import (
    AuthRequest, RegisterResponse, LoginResponse, MessageResponse,
    TransactionIn, TransactionOut, ImportResponse,
    GoalIn, GoalOut, RecommendationResponse, HealthResponse,
)
import os
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Literal
from collections import defaultdict

from fastapi import FastAPI, UploadFile, File, Depends, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.orm import Session as DBSession

from database import get_db, init_db


# =============================================================================
# Rate Limiting
# =============================================================================

class RateLimiter:
    """
    In-memory sliding-window rate limiter.

    Guards login (password guessing) and recommendations (each request may
    reach the paid LLM endpoint).
    """

    def __init__(self, max_requests: int = 30, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests: Dict[str, list] = defaultdict(list)

    def is_allowed(self, identifier: str) -> bool:
        """
        Record a request for ``identifier`` if it is under the limit.

        Returns:
            True if request is allowed, False if rate limited.
        """
        now = time.time()
        window_start = now - self.window_seconds

        self._evict_expired(window_start)
        recent = self.requests.get(identifier, [])

        if len(recent) >= self.max_requests:
            return False

        self.requests[identifier] = recent + [now]
        return True

    def _evict_expired(self, window_start: float) -> None:
        """Trim timestamps outside the window; drop identifiers left with none."""
        for identifier in list(self.requests):
            recent = [t for t in self.requests[identifier] if t > window_start]
            if recent:
                self.requests[identifier] = recent
            else:
                del self.requests[identifier]

    def get_reset_time(self, identifier: str) -> float:
        """Get seconds until rate limit resets."""
        if identifier not in self.requests or not self.requests[identifier]:
            return 0
        oldest = min(self.requests[identifier])
        return max(0, oldest + self.window_seconds - time.time())

    def reset(self) -> None:
        self.requests.clear()


API_RATE_LIMIT = int(os.getenv("API_RATE_LIMIT", "100"))

login_rate_limiter = RateLimiter(max_requests=API_RATE_LIMIT, window_seconds=60)
recommendation_rate_limiter = RateLimiter(max_requests=API_RATE_LIMIT, window_seconds=60)


def _enforce_rate_limit(limiter: RateLimiter, identifier: str) -> None:
    if not limiter.is_allowed(identifier):
        metrics.increment("rate_limited")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please slow down.",
            headers={"Retry-After": str(int(limiter.get_reset_time(identifier)) + 1)},
        )


# =============================================================================
# Application Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    On startup:
        - Create database tables
        - Load the product catalog once
    """
    logger.info("Starting Finance Tracker API")
    init_db()
    app.state.catalog = load_catalog()
    logger.info("Product catalog loaded", buckets=len(app.state.catalog.keys),
                products=len(app.state.catalog))

    yield

    logger.info("Shutting down Finance Tracker API")


# =============================================================================
# FastAPI Application Configuration
# =============================================================================

app = FastAPI(
    title="Finance Tracker API",
    description="""
    Personal finance tracking backend.

    ## Features
    - Registration and JWT login
    - Transactions with CSV/JSON import and export
    - Savings goals
    - Product recommendations from spending and goals
    """,
    version="1.0.0",
    lifespan=lifespan,
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Mapping
# =============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# =============================================================================
# Dependency Injection
# =============================================================================

def get_store(db: DBSession = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_catalog(request: Request) -> ProductCatalog:
    """The catalog loaded at startup."""
    return request.app.state.catalog


def get_query_generator() -> QueryGenerator:
    return QueryGenerator()


def get_recommendation_service(
    store: AccountStore = Depends(get_store),
    catalog: ProductCatalog = Depends(get_catalog),
    query_generator: QueryGenerator = Depends(get_query_generator),
) -> RecommendationService:
    return RecommendationService(store, RecommendationRanker(catalog), query_generator)


# =============================================================================
# System Endpoints
# =============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint",
)
async def health_check(
    db: DBSession = Depends(get_db),
    query_generator: QueryGenerator = Depends(get_query_generator),
) -> HealthResponse:
    """
    Example:
        GET /health
        Response: {"status": "healthy", "database": "connected", "llm": "not_configured"}
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error("Health check database error", error=str(e))
        db_status = "error"

    return HealthResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        llm="configured" if query_generator.is_configured else "not_configured",
    )


@app.get("/metrics", tags=["System"], summary="Get application metrics")
async def get_metrics():
    return metrics.get_summary()


# =============================================================================
# Auth Endpoints
# =============================================================================

@app.post(
    "/api/auth/register",
    response_model=RegisterResponse,
    tags=["Auth"],
    summary="Register a new user",
)
def register_user(
    payload: AuthRequest,
    store: AccountStore = Depends(get_store),
) -> RegisterResponse:
    """
    Raises:
        HTTPException: 400 if email/password blank or email taken.
    """
    user = register(store, payload.email, payload.password)
    return RegisterResponse(message="User registered successfully", email=user.email)


@app.post(
    "/api/auth/login",
    response_model=LoginResponse,
    tags=["Auth"],
    summary="Log in and receive a bearer token",
)
def login_user(
    payload: AuthRequest,
    request: Request,
    store: AccountStore = Depends(get_store),
) -> LoginResponse:
    """
    Raises:
        HTTPException: 400 on bad credentials, 429 when rate limited.
    """
    client_host = request.client.host if request.client else "unknown"
    _enforce_rate_limit(login_rate_limiter, client_host)

    user = login(store, payload.email, payload.password)
    return LoginResponse(
        message="Login successful",
        email=user.email,
        token=create_access_token(user.email),
    )


@app.get("/api/hello", tags=["Auth"], summary="Check authentication")
async def hello(email: str = Depends(get_current_user)) -> str:
    return "Hello! You're authenticated"


# =============================================================================
# Transaction Endpoints
# =============================================================================

@app.get(
    "/api/transactions",
    response_model=List[TransactionOut],
    tags=["Transactions"],
    summary="List the caller's transactions",
)
async def list_transactions(
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> List[TransactionOut]:
    return [TransactionOut.model_validate(t) for t in TransactionService(store).list(email)]


@app.post(
    "/api/transactions",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Transactions"],
    summary="Add a transaction",
)
async def add_transaction(
    payload: TransactionIn,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> TransactionOut:
    """Missing category defaults to "Uncategorized", missing date to today."""
    txn = TransactionService(store).create(email, payload)
    return TransactionOut.model_validate(txn)


@app.get(
    "/api/transactions/export",
    tags=["Transactions"],
    summary="Export the caller's transactions",
)
async def export_transactions(
    format: Literal["json", "csv"] = Query("json"),
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
):
    """
    JSON list by default; ``?format=csv`` returns a file the import endpoint
    accepts back.
    """
    service = TransactionService(store)
    if format == "csv":
        return Response(
            content=service.export_csv(email),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
        )

    return [
        TransactionOut.model_validate(t).model_dump(mode="json")
        for t in service.export_rows(email)
    ]


@app.post(
    "/api/transactions/import",
    response_model=ImportResponse,
    tags=["Transactions"],
    summary="Import transactions from a CSV or JSON file",
)
async def import_transactions(
    file: UploadFile = File(..., description="CSV (title,amount,type,category,account,date,notes) or JSON array"),
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
):
    """
    Files ending in .csv are parsed as CSV, anything else as JSON.

    Returns:
        ImportResponse on success; 400 with ``{error, imported: 0, details}``
        when the file is unreadable or holds no valid rows.

    Example:
        POST /api/transactions/import
        Content-Type: multipart/form-data
        file: transactions.csv
    """
    content = await file.read()

    try:
        imported = TransactionService(store).import_file(email, file.filename, content)
    except TransactionImportError as e:
        if e.reason == TransactionImportError.EMPTY:
            body = {
                "error": "No valid transactions found in file",
                "imported": 0,
                "details": "Please check that your file contains valid data with the required columns (Amount, Type, Account).",
            }
        else:
            body = {
                "error": f"Invalid file: {e}",
                "imported": 0,
                "details": "Please check your file format and ensure it matches the required structure.",
            }
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    return ImportResponse(
        message="Imported successfully",
        imported=imported,
        details=f"{imported} transaction(s) were imported and saved to your account.",
    )


@app.delete(
    "/api/transactions/{transaction_id}",
    response_model=MessageResponse,
    tags=["Transactions"],
    summary="Delete one of the caller's transactions",
)
async def delete_transaction(
    transaction_id: int,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> MessageResponse:
    """
    Raises:
        HTTPException: 404 if the transaction is missing or not the caller's.
    """
    TransactionService(store).delete(email, transaction_id)
    return MessageResponse(message="Transaction deleted successfully")


# =============================================================================
# Goal Endpoints
# =============================================================================

@app.get(
    "/api/goals",
    response_model=List[GoalOut],
    tags=["Goals"],
    summary="List the caller's goals",
)
async def list_goals(
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> List[GoalOut]:
    return [GoalOut.model_validate(g) for g in GoalService(store).list(email)]


@app.post(
    "/api/goals",
    response_model=GoalOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Goals"],
    summary="Create a goal",
)
async def add_goal(
    payload: GoalIn,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> GoalOut:
    """
    Raises:
        HTTPException: 400 if text is missing or blank.
    """
    return GoalOut.model_validate(GoalService(store).create(email, payload))


@app.put(
    "/api/goals/{goal_id}",
    response_model=GoalOut,
    tags=["Goals"],
    summary="Partially update a goal",
)
async def update_goal(
    goal_id: int,
    payload: GoalIn,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> GoalOut:
    """Only non-null fields in the body are applied."""
    return GoalOut.model_validate(GoalService(store).update(email, goal_id, payload))


@app.put(
    "/api/goals/{goal_id}/complete",
    response_model=GoalOut,
    tags=["Goals"],
    summary="Mark a goal complete",
)
async def complete_goal(
    goal_id: int,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> GoalOut:
    return GoalOut.model_validate(GoalService(store).complete(email, goal_id))


@app.delete(
    "/api/goals/{goal_id}",
    response_model=MessageResponse,
    tags=["Goals"],
    summary="Delete a goal",
)
async def delete_goal(
    goal_id: int,
    store: AccountStore = Depends(get_store),
    email: str = Depends(get_current_user),
) -> MessageResponse:
    GoalService(store).delete(email, goal_id)
    return MessageResponse(message="Goal deleted successfully")


# =============================================================================
# Recommendation Endpoint
# =============================================================================

@app.get(
    "/api/recommendations",
    response_model=RecommendationResponse,
    tags=["Recommendations"],
    summary="Paginated product recommendations",
)
async def get_recommendations(
    page: int = Query(0, ge=0),
    size: int = Query(12, ge=1, le=100),
    service: RecommendationService = Depends(get_recommendation_service),
    email: str = Depends(get_current_user),
):
    """
    Rank products from the caller's top spending categories and open goals.

    Example:
        GET /api/recommendations?page=0&size=12
        Response: {"products": [...], "page": 0, "size": 12, "total": 36, "hasMore": true, ...}
    """
    _enforce_rate_limit(recommendation_rate_limiter, email)

    try:
        return await service.get_recommendations(email, page, size)
    except NotFoundError:
        raise
    except Exception as e:
        logger.error("Recommendations failed", error=str(e))
        metrics.increment("recommendations.failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch recommendations",
        )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8080")),
        reload=True
    )
