"""
FastAPI dependencies for dependency injection.

The record store, cache policy, click queue and services are process-scoped:
main.py builds them once in the app lifespan and keeps them on app.state.
These providers hand them to routes; tests swap them by building the app
with different settings.
"""

from fastapi import Request

from cached_shortener.services.analytics import AnalyticsAggregator
from cached_shortener.services.redirect import RedirectResolver
from cached_shortener.services.shortening import ShorteningEngine


def get_shortening_engine(request: Request) -> ShorteningEngine:
    return request.app.state.shortening_engine


def get_redirect_resolver(request: Request) -> RedirectResolver:
    return request.app.state.redirect_resolver


def get_analytics_aggregator(request: Request) -> AnalyticsAggregator:
    return request.app.state.analytics_aggregator
