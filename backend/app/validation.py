from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BeforeValidator, Field, StringConstraints


def _to_stripped_str(v):
    if v is None:
        return v
    return str(v).strip()


# Category keys are matched case-insensitively, so only surrounding space is normalized here.
CategoryName = Annotated[
    str,
    BeforeValidator(_to_stripped_str),
    StringConstraints(min_length=1, max_length=64),
]

ItemId = Annotated[
    str,
    BeforeValidator(_to_stripped_str),
    StringConstraints(min_length=1, max_length=64),
]

Money = Annotated[Decimal, Field(ge=0)]
Percentage = Annotated[Decimal, Field(ge=0, le=100)]
Quantity = Annotated[int, Field(gt=0)]
BundleQuantity = Annotated[int, Field(ge=1)]
