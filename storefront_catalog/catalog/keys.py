"""Cache key convention for catalog entities."""

from typing import Any


def entity_key_name(field: str, value: Any) -> str:
    """Build the cache key of an entity.

    Args:
        field: Identifying field ("sku", "id", ...).
        value: Field value.

    Returns:
        Key of the form ``"<field>/<value>"``.
    """
    return f"{field.strip().lower()}/{str(value).strip()}"


def product_cache_key(document: dict[str, Any], preferred: str = "sku") -> str | None:
    """Build the cache key of a product document.

    Falls back to ``id`` when the preferred field is missing.

    Args:
        document: Product fields.
        preferred: Preferred identifying field.

    Returns:
        Cache key, or None if the product has neither field.
    """
    field = preferred if document.get(preferred) else "id"
    value = document.get(field)
    if value in (None, ""):
        return None
    return entity_key_name(field, value)
