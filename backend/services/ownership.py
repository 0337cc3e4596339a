"""Single ownership check run before every transaction/goal mutation."""

from .errors import NotFoundError


def ensure_owner(caller, resource, kind: str):
    """
    Return ``resource`` if it exists and belongs to ``caller``.

    Missing and foreign resources raise the same NotFoundError, so callers
    cannot probe for other users' ids.

    Args:
        caller: The authenticated User.
        resource: Transaction or Goal (or None when lookup failed).
        kind: Human name for error messages ("Goal", "Transaction").
    """
    if resource is None or resource.user_id != caller.id:
        raise NotFoundError(f"{kind} not found")
    return resource
