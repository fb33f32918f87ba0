from decimal import Decimal
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Amounts leave the API as JSON numbers with two decimal places.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: round(float(value), 2), return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
