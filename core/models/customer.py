from __future__ import annotations
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .common import blank_to_none

PHONE_PATTERN = r"^[\d\s\-+()]+$"


class PersonalInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str = Field(min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("email", "phone", mode="before")
    @classmethod
    def _blank_contact(cls, v):
        return blank_to_none(v)


class AddressInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    billing_address: str = Field(min_length=10)
    shipping_same_as_billing: bool
    shipping_address: Optional[str] = None

    @field_validator("shipping_address", mode="before")
    @classmethod
    def _blank_shipping(cls, v):
        return blank_to_none(v)


class CustomerDraft(PersonalInfo, AddressInfo):
    """Payload d'un client sans id ni created_at (ce que le formulaire produit)."""


class Customer(CustomerDraft):
    id: str
    created_at: str


CUSTOMER_FIELDS = (
    "full_name",
    "email",
    "phone",
    "billing_address",
    "shipping_same_as_billing",
    "shipping_address",
)


def empty_form() -> Dict[str, Any]:
    return {
        "full_name": "",
        "email": "",
        "phone": "",
        "billing_address": "",
        "shipping_same_as_billing": True,
        "shipping_address": "",
    }
