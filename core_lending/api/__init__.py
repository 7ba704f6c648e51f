"""
Lending API Application Factory
"""

import uvicorn
from fastapi import FastAPI

from .catalog import router as catalog_router
from .subscriptions import router as subscriptions_router
from .loans import router as loans_router
from .accounts import router as accounts_router
from .. import __version__


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Core Lending API",
        description="Repayment schedules, payment allocation and due amounts for loans and subscriptions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(catalog_router, prefix="/plans", tags=["Plans"])
    app.include_router(subscriptions_router, prefix="/subscriptions", tags=["Subscriptions"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(accounts_router, tags=["Repayments"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "core_lending_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "core_lending.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
