from datetime import datetime, timezone
import uuid

def gen_id() -> str:
    return str(uuid.uuid4())

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def blank_to_none(value):
    """'' et espaces seuls -> None (champs optionnels du formulaire)."""
    if isinstance(value, str) and not value.strip():
        return None
    return value
