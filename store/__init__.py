"""
Persistence layer for the book manager service.

This package contains:
- MongoDB connection and schema bootstrap
- Credential store (user accounts)
- Catalog store (books and their table of contents)
- The error taxonomy shared with the API
"""

__version__ = "1.0.0"
