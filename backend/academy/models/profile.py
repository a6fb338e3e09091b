from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class Role(str, Enum):
    participant = "participant"
    instructor = "instructor"
    operator = "operator"
    administrator = "administrator"


OPERATOR_ROLES = frozenset({Role.operator, Role.administrator})


class Profile(SQLModel, table=True):
    # id is the subject issued by the external identity provider
    id: str = Field(primary_key=True, max_length=64)
    full_name: str
    email: Optional[str] = None
    role: Role = Field(sa_column=Column(String, nullable=False))
