from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBaseModel(BaseModel):
    """Custom base model for all schemas.
    - fields are snake_case in Python and camelCase on the wire
    - accepts either spelling on input
    - can be built straight from ORM rows
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod
    def from_record(cls, record: Any):
        if isinstance(record, dict):
            return cls(**record)
        if hasattr(record, "__table__"):
            return cls.model_validate(record)
        raise ValueError(f"Invalid record type: {type(record)}")

