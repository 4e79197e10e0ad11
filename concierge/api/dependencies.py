"""
FastAPI dependencies.

create_app() builds every service once and stores it on app.state; routes
pull them from there so tests can build an app around their own settings.
"""

from __future__ import annotations

from fastapi import Request

from concierge.catalog.providers.base import ProductProvider
from concierge.config import ConciergeSettings
from concierge.infrastructure.database import Database
from concierge.intents.resolver import ConciergeResolver
from concierge.support.order_service import OrderService
from concierge.support.widget_service import WidgetService


def get_settings(request: Request) -> ConciergeSettings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_provider(request: Request) -> ProductProvider:
    return request.app.state.provider


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_widget_service(request: Request) -> WidgetService:
    return request.app.state.widget_service


def get_resolver(request: Request) -> ConciergeResolver:
    return request.app.state.resolver
