"""Admin-only routers."""

from storefront.api.routes.admin import (
    dashboard,
    inventory,
    orders,
    products,
    sales_report,
    users,
)

routers = [
    products.router,
    orders.router,
    inventory.router,
    users.router,
    dashboard.router,
    sales_report.router,
]

__all__ = ["routers"]
