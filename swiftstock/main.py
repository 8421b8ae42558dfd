from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from swiftstock.config import settings
from swiftstock.db import build_session_factory, dispose_session_factory
from swiftstock.handlers import install_error_handlers
from swiftstock.log import init_log
from swiftstock.routers import auth, cart, catalog, public, reports, sales, stores, tax, tools
from swiftstock.security.bearer import install_bearer_auth_middleware

logger = init_log()


def create_app(session_factory: sessionmaker[Session] | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = session_factory is None
        app.state.session_factory = session_factory or build_session_factory(settings.database_url_normalized)
        logger.info('SwiftStock API started')
        yield
        if owned:
            dispose_session_factory(app.state.session_factory)

    app = FastAPI(title='SwiftStock', lifespan=lifespan)
    if session_factory is not None:
        app.state.session_factory = session_factory

    install_bearer_auth_middleware(app)
    install_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(public.router)
    app.include_router(catalog.router)
    app.include_router(cart.router)
    app.include_router(sales.router)
    app.include_router(reports.router)
    app.include_router(tax.router)
    app.include_router(tools.router)
    app.include_router(stores.router)

    @app.get('/health')
    def health() -> dict:
        return {'success': True, 'status': 'ok'}

    return app


app = create_app()
