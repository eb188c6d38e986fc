"""
FastAPI REST API for the books catalogue.

This module provides:
- Lookup of books by average rating
- Deletion of books by publication year range
- Bearer token verification for protected routes
"""
