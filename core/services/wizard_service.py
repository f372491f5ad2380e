from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

from core.models.customer import CUSTOMER_FIELDS, Customer, CustomerDraft, empty_form
from core.services.customer_repository import CustomerRepository
from core.services.validation import validate_fields

logger = logging.getLogger(__name__)

T = TypeVar("T")

SAME_AS_BILLING = "Same as billing address"


class Step(IntEnum):
    PERSONAL = 1
    ADDRESS = 2
    REVIEW = 3

    @property
    def title(self) -> str:
        return STEP_TITLES[self]


STEP_TITLES = {
    Step.PERSONAL: "Personal Information",
    Step.ADDRESS: "Address Information",
    Step.REVIEW: "Review & Confirm",
}

STEP_FIELDS: Dict[Step, Tuple[str, ...]] = {
    Step.PERSONAL: ("full_name", "email", "phone"),
    Step.ADDRESS: ("billing_address", "shipping_same_as_billing", "shipping_address"),
    Step.REVIEW: CUSTOMER_FIELDS,
}


def _step_of(field: str) -> Step:
    for step in (Step.PERSONAL, Step.ADDRESS):
        if field in STEP_FIELDS[step]:
            return step
    return Step.REVIEW


class CustomerWizard:
    """
    Formulaire client en 3 étapes (Personnel → Adresse → Récapitulatif).
    - next() valide les champs de l'étape courante avant d'avancer
    - back() / jump_to() ne valident rien et ne perdent aucune saisie
    - submit() revalide tout puis passe le payload au handler
    Une seule requête à la fois (busy) : next/submit refusent de se chevaucher.
    """

    def __init__(
        self,
        repository: CustomerRepository,
        initial: Optional[Union[Customer, Mapping[str, Any]]] = None,
    ) -> None:
        self.repository = repository
        self.data: Dict[str, Any] = empty_form()
        self.original_email: Optional[str] = None
        self.is_editing = initial is not None
        if initial is not None:
            values = initial.model_dump() if isinstance(initial, Customer) else dict(initial)
            for field in CUSTOMER_FIELDS:
                if field in values:
                    self.data[field] = "" if values[field] is None else values[field]
            self.original_email = values.get("email") or None

        self.step = Step.PERSONAL
        self.errors: Dict[str, str] = {}
        self.busy = False
        self.submitted = False

    # ---------------- Saisie ---------------- #

    def update(self, **fields: Any) -> None:
        unknown = set(fields) - set(CUSTOMER_FIELDS)
        if unknown:
            raise KeyError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        self.data.update(fields)
        for field in fields:
            self.errors.pop(field, None)

    def _begin(self) -> None:
        if self.busy:
            raise RuntimeError("A validation or submission is already in flight")
        if self.submitted:
            raise RuntimeError("Form already submitted")
        self.busy = True

    async def _validate(self, fields) -> Dict[str, str]:
        return await validate_fields(
            self.data,
            fields,
            self.repository,
            original_email=self.original_email if self.is_editing else None,
        )

    # ---------------- Navigation ---------------- #

    async def next(self) -> bool:
        if self.step is Step.REVIEW:
            return False
        self._begin()
        try:
            errors = await self._validate(STEP_FIELDS[self.step])
        finally:
            self.busy = False
        self.errors = errors
        if errors:
            logger.debug("Step %s blocked: %s", self.step.name, errors)
            return False
        self.step = Step(self.step + 1)
        return True

    def back(self) -> bool:
        if self.step is Step.PERSONAL:
            return False
        self.step = Step(self.step - 1)
        self.errors = {}
        return True

    def jump_to(self, step: Union[Step, int]) -> None:
        step = Step(step)
        if self.step is not Step.REVIEW:
            raise ValueError("Steps can only be edited from the review screen")
        if step is Step.REVIEW:
            raise ValueError("Jump target must be a data-entry step")
        self.step = step
        self.errors = {}

    async def submit(self, handler: Callable[[CustomerDraft], Awaitable[T]]) -> Optional[T]:
        """
        Retourne le résultat du handler, ou None si la validation finale
        échoue (on revient alors sur la première étape en erreur).
        Les erreurs du handler (stockage, client introuvable) remontent telles quelles.
        """
        if self.step is not Step.REVIEW:
            raise RuntimeError("Submit is only available from the review screen")
        self._begin()
        try:
            errors = await self._validate(CUSTOMER_FIELDS)
            if errors:
                self.errors = errors
                self.step = min(_step_of(f) for f in errors)
                return None
            result = await handler(CustomerDraft.model_validate(self.data))
        finally:
            self.busy = False
        self.submitted = True
        return result

    # ---------------- Récapitulatif ---------------- #

    def review(self) -> List[Tuple[Step, List[Tuple[str, str]]]]:
        d = self.data
        personal = [("Name", d["full_name"])]
        if d.get("email"):
            personal.append(("Email", d["email"]))
        if d.get("phone"):
            personal.append(("Phone", d["phone"]))
        shipping = SAME_AS_BILLING if d.get("shipping_same_as_billing") else (d.get("shipping_address") or "")
        address = [
            ("Billing Address", d["billing_address"]),
            ("Shipping Address", shipping),
        ]
        return [(Step.PERSONAL, personal), (Step.ADDRESS, address)]
