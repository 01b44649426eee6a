"""WooMirror: Remote Record -> Mirror Field Mapping.

Pure functions: no session, no I/O. Each ``map_*`` takes one raw remote
record and returns the column values the synchronizers write.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from dateutil import parser as date_parser

from woomirror.config import settings
from woomirror.core.clock import to_naive_utc

UNNAMED_PRODUCT = "Unnamed Product"


def safe_number(value: Any) -> Optional[float]:
    """Convert to float; ``None`` for missing, empty or non-numeric input."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    number = safe_number(value)
    return int(number) if number is not None else default


def normalize_date(value: Any) -> Optional[datetime]:
    """Parse a remote timestamp into naive UTC.

    Values without an offset (``date_created_gmt`` style) are taken as UTC.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    try:
        parsed = date_parser.isoparse(str(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return to_naive_utc(parsed)


def lower_email(value: Any) -> Optional[str]:
    if not value:
        return None
    email = str(value).strip().lower()
    return email or None


def placeholder_email(kind: str, store_id: int, ident: Any) -> str:
    """Synthesized unique email for buyers the remote knows no address for."""
    return f"{kind}-{store_id}-{ident}@{settings.placeholder_email_domain}"


def _or_none(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _billing(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    return raw.get("billing") or {}


# ── Products ──


def map_product(raw: Mapping[str, Any]) -> Dict[str, Any]:
    woo_id = _or_none(raw.get("id"))
    if not woo_id:
        raise ValueError("Skipping product without Woo ID")
    price = safe_number(raw.get("price"))
    if price is None:
        price = safe_number(raw.get("regular_price"))
    return {
        "woo_id": woo_id,
        "name": raw.get("name") or UNNAMED_PRODUCT,
        "sku": raw.get("sku") or None,
        "price": price if price is not None else 0.0,
        "status": raw.get("status"),
    }


def map_categories(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Remote categories of a product; entries without an id are ignored."""
    categories = []
    for category in raw.get("categories") or []:
        woo_id = _or_none(category.get("id"))
        if not woo_id:
            continue
        categories.append(
            {
                "woo_id": woo_id,
                "name": category.get("name") or category.get("slug") or woo_id,
                "slug": category.get("slug"),
            }
        )
    return categories


# ── Customers ──


@dataclass
class CustomerFields:
    """Identity keys plus profile columns for one buyer."""

    woo_id: Optional[str]
    email: str
    profile: Dict[str, Any] = field(default_factory=dict)


def map_customer(raw: Mapping[str, Any], store_id: int) -> CustomerFields:
    billing = _billing(raw)
    woo_id = _or_none(raw.get("id"))
    # No id and no email: nothing identifies the buyer, so each record stays distinct
    email = lower_email(raw.get("email")) or placeholder_email(
        "guest", store_id, woo_id or f"anon-{uuid.uuid4().hex[:12]}"
    )
    profile: Dict[str, Any] = {
        "first_name": raw.get("first_name") or None,
        "last_name": raw.get("last_name") or None,
        "phone": billing.get("phone") or None,
    }
    last_order = normalize_date(raw.get("date_last_order"))
    if last_order:
        profile["last_active_at"] = last_order
    return CustomerFields(woo_id=woo_id, email=email, profile=profile)


def order_customer(raw: Mapping[str, Any], store_id: int) -> CustomerFields:
    """Buyer of an order; guests get an ``order-<store>-<order>`` placeholder."""
    billing = _billing(raw)
    email = (
        lower_email(billing.get("email"))
        or lower_email(raw.get("customer_email"))
        or placeholder_email("order", store_id, raw.get("id"))
    )
    woo_id = raw.get("customer_id")
    profile: Dict[str, Any] = {
        "first_name": billing.get("first_name") or None,
        "last_name": billing.get("last_name") or None,
        "phone": billing.get("phone") or None,
    }
    active = normalize_date(
        raw.get("date_modified_gmt")
        or raw.get("date_completed")
        or raw.get("date_created")
    )
    if active:
        profile["last_active_at"] = active
    # customer_id 0 marks a guest checkout
    return CustomerFields(
        woo_id=str(woo_id) if woo_id else None, email=email, profile=profile
    )


def subscription_customer(raw: Mapping[str, Any], store_id: int) -> CustomerFields:
    billing = _billing(raw)
    woo_id = raw.get("customer_id")
    email = lower_email(billing.get("email")) or placeholder_email(
        "subscription", store_id, raw.get("id")
    )
    return CustomerFields(
        woo_id=str(woo_id) if woo_id else None,
        email=email,
        profile={
            "first_name": billing.get("first_name") or None,
            "last_name": billing.get("last_name") or None,
            "phone": billing.get("phone") or None,
        },
    )


# ── Coupons ──


def map_coupon(raw: Mapping[str, Any]) -> Dict[str, Any]:
    woo_id = _or_none(raw.get("id"))
    code = raw.get("code") or woo_id
    if not code:
        raise ValueError("Coupon without code")
    return {
        "woo_id": woo_id,
        "code": str(code),
        "discount_type": raw.get("discount_type"),
        "amount": safe_number(raw.get("amount")) or 0.0,
        "date_expires": normalize_date(raw.get("date_expires")),
        "usage_limit": safe_int(raw.get("usage_limit")),
        "usage_count": safe_int(raw.get("usage_count")),
    }


def map_coupon_line(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """A coupon applied to an order (``coupon_lines`` entry)."""
    amount = safe_number(raw.get("discount"))
    if amount is None:
        amount = safe_number(raw.get("amount"))
    return {
        "code": raw.get("code") or "coupon",
        "amount": amount or 0.0,
        "discount_type": raw.get("type"),
    }


# ── Subscriptions ──


def map_subscription(raw: Mapping[str, Any], store_id: int) -> Dict[str, Any]:
    woo_id = _or_none(raw.get("id")) or f"{store_id}:{raw.get('number') or 'unknown'}"
    lines = raw.get("line_items") or []
    first_line = lines[0] if lines else {}
    recurring = safe_number(raw.get("total"))
    if recurring is None:
        recurring = safe_number(first_line.get("subtotal"))
    started = normalize_date(raw.get("start_date") or raw.get("date_created"))
    return {
        "woo_id": woo_id,
        "product_woo_id": _or_none(first_line.get("product_id")),
        "status": raw.get("status") or "unknown",
        "billing_interval": safe_int(raw.get("billing_interval"), 1),
        "billing_period": raw.get("billing_period") or "month",
        "started_at": started,
        "next_payment_at": normalize_date(raw.get("next_payment_date")),
        "recurring_amount": recurring or 0.0,
    }


# ── Orders ──


def map_order(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Order columns; money fields are copied, never derived from lines."""
    woo_id = _or_none(raw.get("id"))
    if not woo_id:
        raise ValueError("Missing Woo order id")
    billing = _billing(raw)
    shipping = raw.get("shipping") or {}
    total = safe_number(raw.get("total"))
    subtotal = safe_number(raw.get("subtotal"))
    return {
        "woo_id": woo_id,
        "created_at": normalize_date(
            raw.get("date_created_gmt") or raw.get("date_created")
        ),
        "status": raw.get("status"),
        "currency": raw.get("currency"),
        "billing_email": lower_email(billing.get("email"))
        or lower_email(raw.get("customer_email")),
        "total": total or 0.0,
        "subtotal": subtotal if subtotal is not None else total,
        "discount_total": safe_number(raw.get("discount_total")),
        "shipping_total": safe_number(raw.get("shipping_total")),
        "tax_total": safe_number(raw.get("total_tax")),
        "payment_method": raw.get("payment_method") or None,
        "shipping_country": shipping.get("country") or None,
        "shipping_city": shipping.get("city") or None,
    }


def map_line_item(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "woo_line_id": _or_none(raw.get("id")),
        "product_woo_id": _or_none(raw.get("product_id")),
        "name": raw.get("name") or "Line Item",
        "sku": raw.get("sku") or None,
        "quantity": safe_int(raw.get("quantity"), 1),
        "unit_price": safe_number(raw.get("price")),
        "line_subtotal": safe_number(raw.get("subtotal")),
        "line_total": safe_number(raw.get("total")),
        "tax_total": safe_number(raw.get("total_tax")),
    }


def map_refund(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "woo_id": _or_none(raw.get("id")),
        "amount": safe_number(raw.get("amount")) or 0.0,
        "reason": raw.get("reason") or None,
        "created_at": normalize_date(
            raw.get("date_created_gmt") or raw.get("date_created")
        ),
    }


def remote_order_day(raw: Mapping[str, Any]) -> Optional[str]:
    """UTC calendar day (YYYY-MM-DD) the remote says an order was created."""
    created = normalize_date(raw.get("date_created_gmt") or raw.get("date_created"))
    return created.date().isoformat() if created else None


# ── Attribution ──


def extract_utm(
    meta_data: Sequence[Mapping[str, Any]] | None,
    priority: Mapping[str, Sequence[str]] | None = None,
) -> Dict[str, Optional[str]]:
    """Pick UTM values out of an order's ``meta_data`` bag.

    For each field the keys in ``priority`` are tried in order and the
    first non-empty value wins. Key matching is case-insensitive.
    """
    priority = priority or settings.utm_key_priority
    lookup: Dict[str, str] = {}
    for entry in meta_data or []:
        if not isinstance(entry, Mapping) or not entry.get("key"):
            continue
        value = entry.get("value")
        if value in (None, ""):
            continue
        lookup.setdefault(str(entry["key"]).lower(), str(value))

    utm: Dict[str, Optional[str]] = {}
    for name in ("source", "medium", "campaign", "term", "content"):
        utm[f"utm_{name}"] = next(
            (lookup[k.lower()] for k in priority.get(name, []) if k.lower() in lookup),
            None,
        )
    return utm
