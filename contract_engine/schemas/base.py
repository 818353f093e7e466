"""Shared base model for engine records."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    """
    Immutable record with camelCase aliases.

    Records are produced fresh by each operation and never mutated in place;
    status changes return a new instance via ``model_copy``.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )
