"""
FastAPI RESTful API for the Book Manager service.

This module provides a REST API for:
- Account signup and login
- Bearer token authentication
- Book catalog reads for any authenticated user
- Owner-only book updates and deletion
"""
