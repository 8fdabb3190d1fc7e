"""
Storefront - e-commerce storefront and admin back office.

Product browsing, search, ratings, comments, buy-now checkout, the order
lifecycle, and an admin dashboard over inventory, orders, users and sales.
"""

__version__ = "0.1.0"
