# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Global ID helpers
# ============================================================================
#
# The platform identifies entities as "gid://shopify/<Resource>/<id>".
# The ledger stores the trailing local id; mutations need the full gid.
#
# ============================================================================

GID_SCHEME = "gid://"
GID_PREFIX = "gid://shopify/"


def is_global_id(value: str) -> bool:
    return value.startswith(GID_SCHEME)


def to_global_id(resource: str, value: str) -> str:
    """
    Normalize an id to global-id form.

    Raises:
        ValueError: If value is empty
    """
    value = str(value).strip()
    if not value:
        raise ValueError(f"Empty {resource} id")
    if is_global_id(value):
        return value
    return f"{GID_PREFIX}{resource}/{value}"


def extract_local_id(value: str) -> str:
    """Trailing id segment of a global id; non-gid input is returned unchanged."""
    value = str(value).strip()
    if not is_global_id(value):
        return value
    return value.split("?", 1)[0].rstrip("/").split("/")[-1]
