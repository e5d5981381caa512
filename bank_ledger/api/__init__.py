"""
Bank Ledger API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .deps import BankingSystem
from .auth import router as auth_router
from .users import router as users_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from ..config import BankLedgerConfig, get_config
from ..errors import BankingError
from ..logging_config import get_logger, setup_logging
from ..seed import seed_admin

logger = get_logger("bank_ledger.api")


def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        # Drop the "body"/"path"/"query" prefix
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        errors.append({"field": field, "message": error.get("msg"), "type": error.get("type")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Translate every failure into a {"status": "failed", "message": ...} body"""

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "status": "failed",
                "message": "Validation failed",
                "errors": _field_errors(exc)
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "failed", "message": message}
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path,
            exc_info=(type(exc), exc, exc.__traceback__)
        )
        return JSONResponse(
            status_code=500,
            content={"status": "failed", "message": "Internal server error"}
        )


def create_app(system: Optional[BankingSystem] = None,
               config: Optional[BankLedgerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application

    Without an explicit system, one is built from configuration and the
    admin user is seeded at startup.
    """
    config = config or get_config()
    setup_logging(config.log_level, log_file=config.log_file)
    seed_on_startup = system is None and config.seed_admin
    system = system or BankingSystem.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if seed_on_startup:
            seed_admin(system.user_manager, config)
        yield
        system.storage.close()

    app = FastAPI(
        title="Bank Ledger API",
        description="Users, bank accounts and atomic money transfers",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.banking_system = system

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    prefix = config.api_prefix
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Auth"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(accounts_router, prefix=f"{prefix}/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix=f"{prefix}/transactions", tags=["Transactions"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "bank_ledger_api",
            "version": "1.0.0"
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Bank Ledger API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": f"{prefix}/auth",
                "users": f"{prefix}/users",
                "accounts": f"{prefix}/accounts",
                "transactions": f"{prefix}/transactions",
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 3000, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "bank_ledger.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
