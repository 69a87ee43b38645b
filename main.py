import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from cached_shortener.api import analytics, redirect, urls
from cached_shortener.cache.factory import CacheBackend, CacheFactory
from cached_shortener.cache.policy import URLCachePolicy
from cached_shortener.click_processor.click_worker import ClickWorker
from cached_shortener.config import Settings, settings as default_settings
from cached_shortener.database.connection import (
    close_db,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from cached_shortener.errors import register_error_handlers
from cached_shortener.logging_config import setup_logging
from cached_shortener.queue.factory import QueueBackend, QueueFactory
from cached_shortener.services.analytics import AnalyticsAggregator
from cached_shortener.services.redirect import RedirectResolver
from cached_shortener.services.short_code_strategies import RandomShortCodeStrategy
from cached_shortener.services.shortening import ShorteningEngine
from cached_shortener.storage.strategies import SQLRecordStore

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; store, cache and queue live for the app's lifespan."""
    settings = settings or default_settings
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine_from_settings(settings)
        await init_db(engine)
        cache = await CacheFactory.create(CacheBackend(settings.cache_backend), settings)
        queue = await QueueFactory.create(QueueBackend(settings.queue_backend), settings)

        store = SQLRecordStore(create_session_factory(engine))
        cache_policy = URLCachePolicy(
            cache,
            url_ttl=settings.url_cache_ttl,
            analytics_ttl=settings.analytics_cache_ttl,
            timeout=settings.cache_timeout,
        )

        app.state.settings = settings
        app.state.store = store
        app.state.cache_policy = cache_policy
        app.state.click_queue = queue
        app.state.shortening_engine = ShorteningEngine(
            store,
            cache_policy,
            RandomShortCodeStrategy(length=settings.short_code_length),
            base_url=settings.base_url,
            max_retries=settings.max_retries,
        )
        app.state.redirect_resolver = RedirectResolver(
            store,
            cache_policy,
            queue,
            queue_name=settings.queue_name,
            publish_timeout=settings.queue_publish_timeout,
        )
        app.state.analytics_aggregator = AnalyticsAggregator(
            store, cache_policy, recent_limit=settings.recent_urls_limit
        )
        app.state.click_worker = worker = ClickWorker(
            queue,
            store,
            cache_policy,
            queue_name=settings.queue_name,
            batch_size=settings.queue_batch_size,
            block_time=settings.queue_block_ms,
        )

        worker_task = None
        if settings.click_worker_enabled:
            worker_task = asyncio.create_task(worker.run())

        logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
        try:
            yield
        finally:
            # Let the batch in flight finish, then apply clicks still queued
            if worker_task is not None:
                await worker.shutdown(
                    worker_task,
                    timeout=settings.queue_block_ms / 1000 + settings.click_worker_shutdown_grace,
                )
            else:
                await worker.drain()
            await queue.close()
            await cache.close()
            await close_db(engine)
            logger.info("Store, cache and queue connections closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="A URL shortener with a cache-aside Redis layer",
        debug=settings.debug,
        lifespan=lifespan,
    )
    register_error_handlers(app)

    @app.get("/")
    def read_root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs",
            "redoc": "/redoc"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "environment": settings.environment}

    ######## Include routers
    app.include_router(urls.router, prefix="/api")
    app.include_router(analytics.router, prefix="/api")
    # Catch-all short code route goes last
    app.include_router(redirect.router)

    return app


app = create_app()
