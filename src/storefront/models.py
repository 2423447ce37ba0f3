"""
Central Model Registry

Imports every SQLAlchemy model so all tables are registered on ``Base.metadata``
before ``create_all`` runs. Import this module from any entry point that creates
tables without going through the routers (the CLI, test fixtures).
"""

from storefront.db import Base
from storefront.products.models import Product
from storefront.users.models import User

__all__ = ["Base", "Product", "User"]
