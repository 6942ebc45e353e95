"""SQLAlchemy declarative base.

``Base.metadata`` holds only the tables this project owns and migrates.
The indexing node's metadata tables live on a separate ``MetaData`` in
``reclaim.models.metadata``.
"""

import re

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    """Base class for all owned SQLAlchemy models.

    Provides automatic table naming and common configuration.
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:  # noqa: N805 - cls is correct for declared_attr
        """Generate table name from class name (CamelCase -> snake_case)."""
        name = cls.__name__
        s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
        return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()
