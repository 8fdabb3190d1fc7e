"""API routers mounted under ``/api``."""

from storefront.api.routes import (
    auth,
    buy_now,
    categories,
    comments,
    events,
    orders,
    ratings,
    search,
    user_products,
)
from storefront.api.routes.admin import routers as admin_routers

routers = [
    auth.router,
    categories.router,
    events.router,
    user_products.router,
    ratings.router,
    comments.router,
    search.router,
    buy_now.router,
    orders.router,
    *admin_routers,
]

__all__ = ["routers"]
