from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from lastpiece.shared.database import Database
from lastpiece.shared.email import Mailer
from lastpiece.shared.errors import register_exception_handlers
from lastpiece.shared.logging_config import setup_logging, RequestLoggingMiddleware
from lastpiece.shared.security_config import setup_rate_limiting, SecurityHeadersMiddleware
from lastpiece.shared.utils import settings, HealthResponse

from lastpiece.admin.routes import router as admin_router
from lastpiece.auth.routes import router as auth_router
from lastpiece.cart.routes import router as cart_router
from lastpiece.catalog.routes import router as product_router, category_router
from lastpiece.orders.routes import router as order_router
from lastpiece.reviews.routes import router as review_router
from lastpiece.wishlist.routes import router as wishlist_router

VERSION = "1.0.0"

# Setup Logging
logger = setup_logging(settings.SERVICE_NAME, settings.LOG_LEVEL)


def create_app(database: Optional[Database] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    """Build the API. Tests pass their own database and mailer."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or await Database.connect(settings)
        if db.connected:
            try:
                await db.create_indexes()
            except PyMongoError:
                logger.exception("Index creation failed")
        app.state.db = db
        app.state.mailer = mailer or Mailer(settings)
        logger.info("%s started in %s mode", settings.SERVICE_NAME, settings.ENVIRONMENT)
        yield
        if database is None:
            db.close()

    app = FastAPI(title="Last Piece API", version=VERSION, lifespan=lifespan)

    # added innermost first: requests pass logging, security headers, CORS, then rate limiting
    setup_rate_limiting(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware, service_name=settings.SERVICE_NAME)

    register_exception_handlers(app)

    for router in (
        auth_router, product_router, category_router, cart_router,
        order_router, wishlist_router, review_router, admin_router,
    ):
        app.include_router(router)

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        db: Database = request.app.state.db
        db_status = "connected" if await db.ping() else "disconnected"
        return HealthResponse(
            service=settings.SERVICE_NAME,
            status="healthy" if db_status == "connected" else "degraded",
            timestamp=datetime.utcnow(),
            version=VERSION,
            database=db_status,
        )

    return app


app = create_app()
