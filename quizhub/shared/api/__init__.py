"""Middleware and exception handlers shared by the HTTP layer."""
