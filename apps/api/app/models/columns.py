from enum import Enum

from sqlalchemy import Enum as SAEnum


def value_enum(enum_cls: type[Enum], length: int = 40) -> SAEnum:
    """Store a str enum by its value in a VARCHAR column."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
