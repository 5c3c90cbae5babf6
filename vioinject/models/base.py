"""Base model for all vioinject Pydantic models."""

from pydantic import BaseModel, ConfigDict


class VioinjectBaseModel(BaseModel):
    """Base model class for all vioinject Pydantic models.

    Unknown fields are rejected and assignments are validated so results and
    catalog entries stay consistent after construction.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_assignment=True,
        arbitrary_types_allowed=True,
    )
