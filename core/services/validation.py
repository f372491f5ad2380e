"""
Règles de validation d'un client, indépendantes de l'UI.

Les règles de champ sont portées par les modèles pydantic (core.models.customer);
ce module les traduit en messages par champ, ajoute les règles inter-champs et
la vérification asynchrone d'unicité de l'email. Rien n'est levé : le résultat
est un dict {champ: message}, vide si tout est valide.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, NamedTuple, Optional, Tuple

from pydantic import ValidationError

from core.models.customer import CUSTOMER_FIELDS, CustomerDraft

if TYPE_CHECKING:
    from core.services.customer_repository import CustomerRepository

REQUIRED = "Required"
EITHER_CONTACT_REQUIRED = "Either email or phone is required"
SHIPPING_REQUIRED = "Shipping address required when different from billing"
DUPLICATE_EMAIL = "Email already exists"

# message par (champ, type d'erreur pydantic); "*" = tout autre type
_FIELD_MESSAGES: Dict[str, Dict[str, str]] = {
    "full_name": {
        "string_too_short": "Name must be at least 2 characters",
        "string_too_long": "Name must be at most 100 characters",
    },
    "email": {"*": "Invalid email"},
    "phone": {"*": "Invalid phone format"},
    "billing_address": {"string_too_short": "Address too short"},
}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class CrossFieldRule(NamedTuple):
    field: str
    depends_on: Tuple[str, ...]
    message: str
    check: Callable[[Mapping[str, Any]], bool]


CROSS_FIELD_RULES: Tuple[CrossFieldRule, ...] = (
    CrossFieldRule(
        field="email",
        depends_on=("email", "phone"),
        message=EITHER_CONTACT_REQUIRED,
        check=lambda d: bool(_text(d.get("email")) or _text(d.get("phone"))),
    ),
    CrossFieldRule(
        field="shipping_address",
        depends_on=("shipping_same_as_billing", "shipping_address"),
        message=SHIPPING_REQUIRED,
        check=lambda d: bool(d.get("shipping_same_as_billing")) or bool(_text(d.get("shipping_address"))),
    ),
)


def _message_for(field: str, error: Dict[str, Any]) -> str:
    if error["type"] == "missing" or error.get("input") is None:
        return REQUIRED
    table = _FIELD_MESSAGES.get(field, {})
    return table.get(error["type"]) or table.get("*") or error["msg"]


def field_errors(data: Mapping[str, Any]) -> Dict[str, str]:
    """Règles de champ uniquement (premier message par champ)."""
    try:
        CustomerDraft.model_validate(dict(data))
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for err in exc.errors():
            if not err["loc"]:
                continue
            field = str(err["loc"][0])
            errors.setdefault(field, _message_for(field, err))
        return errors
    return {}


def validate_customer(data: Mapping[str, Any], fields: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """
    Règles synchrones. `fields` restreint le résultat à un sous-ensemble
    (une étape du formulaire); une règle inter-champs n'est évaluée que si
    les champs dont elle dépend ont passé leurs propres règles.
    """
    selected = set(CUSTOMER_FIELDS if fields is None else fields)
    all_errors = field_errors(data)
    errors = {f: m for f, m in all_errors.items() if f in selected}
    for rule in CROSS_FIELD_RULES:
        if rule.field not in selected or rule.field in errors:
            continue
        if any(dep in all_errors for dep in rule.depends_on):
            continue
        if not rule.check(data):
            errors[rule.field] = rule.message
    return errors


async def check_email_unique(
    email: Optional[str],
    repository: "CustomerRepository",
    original_email: Optional[str] = None,
) -> Optional[str]:
    """
    Email déjà pris par un autre client ? En édition, l'email inchangé
    (casse ignorée) n'est pas revérifié.
    """
    if not _text(email):
        return None
    if original_email and _text(email).lower() == _text(original_email).lower():
        return None
    if await repository.email_exists(_text(email)):
        return DUPLICATE_EMAIL
    return None


async def validate_fields(
    data: Mapping[str, Any],
    fields: Iterable[str],
    repository: "CustomerRepository",
    original_email: Optional[str] = None,
) -> Dict[str, str]:
    fields = tuple(fields)
    errors = validate_customer(data, fields)
    if "email" in fields and "email" not in errors:
        duplicate = await check_email_unique(data.get("email"), repository, original_email)
        if duplicate:
            errors["email"] = duplicate
    return errors
