"""WooMirror: Identity resolution.

Customers and categories are found by trying several keys in a fixed
precedence. A lookup plan is an ordered list of ``(strategy, key)``
attempts; ``first_match`` walks it and returns the first hit. The plan
builders and ``first_match`` are pure, so the precedence is testable
without a database.

Precedence:
    customers   woo_id, then email
    categories  woo_id, then name
"""

from typing import Any, Callable, List, Optional, Tuple, TypeVar

T = TypeVar("T")

Attempt = Tuple[str, Any]

BY_WOO_ID = "woo_id"
BY_EMAIL = "email"
BY_NAME = "name"


def customer_plan(woo_id: Optional[str], email: Optional[str]) -> List[Attempt]:
    return _plan((BY_WOO_ID, woo_id), (BY_EMAIL, email))


def category_plan(woo_id: Optional[str], name: Optional[str]) -> List[Attempt]:
    return _plan((BY_WOO_ID, woo_id), (BY_NAME, name))


def _plan(*attempts: Attempt) -> List[Attempt]:
    return [(strategy, key) for strategy, key in attempts if key not in (None, "")]


def first_match(
    plan: List[Attempt],
    lookup: Callable[[str, Any], Optional[T]],
) -> Tuple[Optional[str], Optional[T]]:
    """Return ``(strategy, record)`` for the first attempt that finds a record."""
    for strategy, key in plan:
        record = lookup(strategy, key)
        if record is not None:
            return strategy, record
    return None, None
