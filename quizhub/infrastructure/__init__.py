"""
Infrastructure Layer
=====================

Database connection management, schema and driver error handling.
"""
