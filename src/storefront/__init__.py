"""
Storefront API - user authentication and product catalog service.

Components:
- Authentication (bcrypt password hashing, signed JWT access tokens)
- Product catalog CRUD
- Request metrics, health reporting and per-client rate limiting
"""

__version__ = "1.0.0"
__author__ = "Storefront Team"
