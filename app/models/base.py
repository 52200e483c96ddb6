"""Common declarative base for the portal's tables."""

from sqlmodel import SQLModel


class BaseModel(SQLModel):
    """Abstract parent of every table model; registers on ``SQLModel.metadata``."""

    __abstract__ = True
