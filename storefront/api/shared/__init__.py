"""Helpers shared by every API router: auth dependencies, errors, middleware."""
