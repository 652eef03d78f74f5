"""
Accounting API Application Factory
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging
from .accounts import router as accounts_router
from .audit import router as audit_router
from .errors import register_exception_handlers
from .system import close_accounting_system
from .transactions import router as transactions_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_accounting_system()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Accounting Service API",
        description="Service to manage accounts and their transactions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(accounts_router, prefix="/api/v1/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/api/v1/transactions", tags=["Transactions"])
    app.include_router(audit_router, prefix="/api/v1/audit", tags=["Audit"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "accounting_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Accounting Service API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "accounts": "/api/v1/accounts",
                "transactions": "/api/v1/transactions",
                "audit": "/api/v1/audit",
            }
        }

    return app


app = create_app()


def run_server(host: str = None, port: int = None):
    """Configure logging and serve the API with uvicorn"""
    config = get_config()
    setup_logging(config.log_level, config.log_format, log_file=config.log_file)
    uvicorn.run(
        app,
        host=host or config.api_host,
        port=port or config.api_port,
        log_level=config.log_level.lower()
    )
