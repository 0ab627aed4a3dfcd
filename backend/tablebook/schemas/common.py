"""
Shared schema plumbing: camelCase wire names and the success envelope.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Serialises as camelCase, accepts camelCase or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataEnvelope(CamelModel, Generic[T]):
    data: T
    request_id: Optional[str] = None
