"""
Base Schema Models

Defines the base class all schema models inherit from, providing
deterministic serialization for results that are hashed, logged or
compared.

Core Classes:
    - CanonicalModel: RFC8785-style Pydantic base model with canonical JSON output

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    The JSON representation is deterministically ordered (sorted keys) and
    whitespace-minimal, so two equal models always serialize to the same
    string.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        MyModel(name="test", value=123).to_canonical_json()
        # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json", by_alias=True)`` converts nested models,
        enums and datetimes to JSON types; ``json.dumps`` with sorted keys
        and compact separators makes the output deterministic.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation, using field aliases.
        """
        return self.model_dump(by_alias=True)
