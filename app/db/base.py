# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the class session calendar.

    Model modules are registered on `Base.metadata` by `app.db.session`.
    """
    pass
