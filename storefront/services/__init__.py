"""Business logic for Storefront.

Routes stay thin: they parse requests, call into these modules and shape
responses. Services work on a caller-provided ``AsyncSession`` and raise
``storefront.exceptions`` errors; they never commit.
"""
