"""
Provider banking schemas.

Banking details are stored by the (external) persistence collaborator.
Reads are redacted unless decrypted fields are explicitly requested.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BankingRecord(BaseModel):
    physician_id: str
    bank_name: str
    routing_number: str = Field(..., pattern=r"^\d{9}$")
    account_number: str = Field(..., pattern=r"^\d{4,17}$")
    account_type: Literal["checking", "savings"] = "checking"

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def redacted(self) -> "BankingRecord":
        """
        Copy with masked account numbers.

        Routing numbers keep their first and last two digits, account
        numbers keep the last four.
        """
        return self.model_copy(
            update={
                "routing_number": mask_routing_number(self.routing_number),
                "account_number": mask_account_number(self.account_number),
            }
        )


class BankingUpdate(BaseModel):
    """Request body of a banking update."""

    bank_name: str = Field(..., min_length=1)
    routing_number: str = Field(..., pattern=r"^\d{9}$")
    account_number: str = Field(..., pattern=r"^\d{4,17}$")
    account_type: Optional[Literal["checking", "savings"]] = None

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


def mask_routing_number(value: str) -> str:
    if len(value) < 4:
        return "*" * len(value)
    return value[:2] + "*" * (len(value) - 4) + value[-2:]


def mask_account_number(value: str) -> str:
    if len(value) < 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
