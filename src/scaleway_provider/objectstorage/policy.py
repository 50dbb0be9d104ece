"""Bucket policy documents: normalization and equivalence."""

import json
from typing import Any, Dict, List, Optional

from scaleway_provider.utils.errors import ValidationError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

EMPTY_POLICY = "{}"

# Statement fields whose value may be a string or a list of strings
_LIST_FIELDS = ("Action", "NotAction", "Resource", "NotResource")
_PRINCIPAL_FIELDS = ("Principal", "NotPrincipal")


def _is_empty(policy: Optional[str]) -> bool:
    return (policy or "").strip() in ("", EMPTY_POLICY)


def _as_sorted_list(value: Any) -> List[Any]:
    values = value if isinstance(value, list) else [value]
    return sorted(set(values), key=str)


def _normalize_principal(principal: Any) -> Any:
    if isinstance(principal, dict):
        return {kind: _as_sorted_list(value) for kind, value in principal.items()}
    return principal


def _normalize_condition(condition: Dict[str, Any]) -> Dict[str, Any]:
    return {
        operator: {key: _as_sorted_list(value) for key, value in (values or {}).items()}
        for operator, values in condition.items()
    }


def _normalize_statement(statement: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(statement)
    for field in _LIST_FIELDS:
        if field in normalized:
            normalized[field] = _as_sorted_list(normalized[field])
    for field in _PRINCIPAL_FIELDS:
        if field in normalized:
            normalized[field] = _normalize_principal(normalized[field])
    if "Condition" in normalized and isinstance(normalized["Condition"], dict):
        normalized["Condition"] = _normalize_condition(normalized["Condition"])
    return normalized


def normalize_policy(policy: Optional[str]) -> str:
    """Canonical form of a policy document.

    Statements are sorted, string-or-list values become sorted lists and keys
    are sorted. `""` and `"{}"` both give `"{}"`. The result normalizes to
    itself.

    Args:
        policy: JSON policy document

    Returns:
        Canonical JSON string

    Raises:
        ValidationError: If the document is not a JSON object
    """
    if _is_empty(policy):
        return EMPTY_POLICY
    try:
        document = json.loads(policy)
    except ValueError as e:
        raise ValidationError(f"policy contains an invalid JSON: {e}", attribute="policy") from None
    if not isinstance(document, dict):
        raise ValidationError("policy must be a JSON object", attribute="policy")

    statements = document.get("Statement")
    if statements is not None:
        if not isinstance(statements, list):
            statements = [statements]
        normalized = [_normalize_statement(s) for s in statements]
        document["Statement"] = sorted(normalized, key=lambda s: json.dumps(s, sort_keys=True))

    return json.dumps(document, sort_keys=True, separators=(",", ":"))


def policies_are_equivalent(first: Optional[str], second: Optional[str]) -> bool:
    """True when both documents have the same canonical form.

    Raises:
        ValidationError: If one of the documents is invalid
    """
    return normalize_policy(first) == normalize_policy(second)


def suppress_equivalent_policy_diffs(key: str, old: str, new: str, data: Any = None) -> bool:
    """Diff suppressor for policy attributes; invalid documents are never suppressed."""
    logger.debug(f"suppress policy on key: {key}, old: {old} new: {new}")
    if _is_empty(old) and _is_empty(new):
        return True
    try:
        return policies_are_equivalent(old, new)
    except ValidationError:
        return False


def second_json_unless_equivalent(old: Optional[str], new: Optional[str]) -> str:
    """The new document, or the old one when both are equivalent.

    Keeps the user's formatting in state when the API returns the same policy
    reformatted.

    Raises:
        ValidationError: If one of the documents is invalid
    """
    if not (new or "").strip():
        return ""
    if new.strip() == EMPTY_POLICY:
        return EMPTY_POLICY
    if _is_empty(old):
        return new
    if policies_are_equivalent(old, new):
        return old
    return new
