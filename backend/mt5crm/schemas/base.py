"""
MT5 CRM Backend - Schema base classes

The public API speaks camelCase JSON; Python code uses snake_case.
"""
from decimal import Decimal
from typing import Annotated

from pydantic import AliasGenerator, AfterValidator, BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from mt5crm.utils.money import round_money


class RequestModel(BaseModel):
    """Request body: accepts camelCase (and snake_case) keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ResponseModel(BaseModel):
    """Response body: built from attributes, serialized as camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


# Decimal rounded to 2 places (ROUND_HALF_UP), emitted as a JSON number
Money = Annotated[
    Decimal,
    AfterValidator(round_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Message(ResponseModel):
    """Generic message response schema."""
    message: str


class FieldError(ResponseModel):
    field: str
    message: str


class ErrorResponse(ResponseModel):
    """Error response schema."""
    detail: str
    code: str | None = None
    errors: list[FieldError] | None = None
