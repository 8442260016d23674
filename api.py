"""
Print Shop Manager FastAPI Application

Main entry point for the print shop API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

# Common library imports
from common.auth import AuthProvider, FirebaseAuth
from common.database import MongoDB
from common.utils import success_response
from common.utils.exceptions import ServiceUnavailableException

# App-specific imports
from printshop.config import Settings, settings as default_settings
from printshop.dependencies import build_services

# Import routers
from printshop.routers import (
    auth_router,
    session_router,
    organization_router,
    resources_router,
    pricing_router,
    dashboard_router,
    live_router,
)

API_PREFIX = "/api/v1"
VERSION = "1.0.0"
STORE_RETRY_AFTER_SECONDS = 5


def create_app(
    settings: Settings = default_settings,
    auth_provider: Optional[AuthProvider] = None,
    database: Optional[MongoDB] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings
        auth_provider: Identity provider, Firebase when omitted
        database: Connection manager, a new one when omitted

    Returns:
        FastAPI app
    """
    main_db = database or MongoDB()

    # =========================================================================
    # Application Lifespan
    # =========================================================================
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Connect to MongoDB, build the services, and tear both down on exit.
        """
        print("Starting Print Shop API...")
        settings.validate_required()

        if not main_db.is_connected:
            await main_db.connect(
                uri=settings.MONGODB_URI,
                database_name=settings.MONGODB_DATABASE,
            )
        print(f"Connected to database: {main_db.database_name}")

        auth = auth_provider or FirebaseAuth(
            credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
            project_id=settings.FIREBASE_PROJECT_ID,
            api_key=settings.FIREBASE_API_KEY,
        )

        app.state.services = build_services(main_db.db, auth, settings)
        print("Print Shop API started successfully!")

        yield

        print("Shutting down Print Shop API...")
        await app.state.services.subscriptions.close_all()
        await main_db.disconnect()
        print("Print Shop API shut down complete.")

    # =========================================================================
    # FastAPI Application
    # =========================================================================
    app = FastAPI(
        title="Print Shop Manager API",
        description="Multi-tenant backend for a 3D print shop",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development() else None,
        redoc_url="/redoc" if settings.is_development() else None,
    )

    # =========================================================================
    # CORS Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Store failures are retryable
    # =========================================================================
    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        error = ServiceUnavailableException(
            message="The data store is temporarily unavailable, please retry",
            code="STORE_UNAVAILABLE",
            retry_after=STORE_RETRY_AFTER_SECONDS,
        )
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.detail},
            headers=error.headers,
        )

    # =========================================================================
    # Include Routers (all under /api/v1 prefix)
    # =========================================================================
    app.include_router(auth_router, prefix=API_PREFIX, tags=["Authentication"])
    app.include_router(session_router, prefix=API_PREFIX, tags=["Session"])
    app.include_router(organization_router, prefix=API_PREFIX, tags=["Organizations"])
    app.include_router(resources_router, prefix=API_PREFIX, tags=["Resources"])
    app.include_router(pricing_router, prefix=API_PREFIX, tags=["Pricing"])
    app.include_router(dashboard_router, prefix=API_PREFIX, tags=["Dashboard"])
    app.include_router(live_router, prefix=API_PREFIX, tags=["Live"])

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================
    @app.get("/health", tags=["Health"])
    async def health():
        """
        Health check endpoint.

        Returns the status of the API and database connection.
        """
        return success_response({
            "status": "ok",
            "version": VERSION,
            "database": main_db.is_connected,
        })

    return app


app = create_app()


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.is_development(),
    )
