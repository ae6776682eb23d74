import uuid

from sqlalchemy import CheckConstraint


def new_id() -> str:
    return str(uuid.uuid4())


def enum_check(column: str, enum_cls, name: str) -> CheckConstraint:
    """CHECK constraint restricting ``column`` to the values of ``enum_cls`` (NULL allowed)."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return CheckConstraint(f"{column} IS NULL OR {column} IN ({values})", name=name)
