"""Reusable, strict base models for the watcher."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model that accepts camelCase keys alongside field names.

    Chain node APIs answer in camelCase JSON (`parentHash`, `blockNumber`),
    and watcher settings usually live next to them in the same JSON config.
    With a camelCase alias on every field, a `BlockHeader` subclass can be
    validated straight from a node response and a `WatcherConfig` straight
    from a config document, while Python code keeps snake_case names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
    )


class StrictBaseModel(CamelModel):
    """
    A strict, immutable pydantic base model.

    Blocks and configs are shared across callbacks and must not change
    under a subscriber, so instances are frozen and unknown keys rejected.
    """

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }
