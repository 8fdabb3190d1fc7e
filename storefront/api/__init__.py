"""HTTP API for Storefront."""
