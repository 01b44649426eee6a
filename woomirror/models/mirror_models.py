"""WooMirror: Mirror Models.

Local copies of remote commerce entities. Every row is scoped by ``store_id``
and keyed by the remote ``woo_id`` where the remote platform provides one,
so re-running a sync converges instead of duplicating.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from woomirror.core.clock import utcnow


class Store(SQLModel, table=True):
    """Tenant and remote credentials. One row drives one sync run."""

    __tablename__ = "stores"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")
    woo_base_url: Optional[str] = Field(default=None, unique=True)
    woo_key: Optional[str] = None
    woo_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Product(SQLModel, table=True):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("store_id", "woo_id", name="uq_product_store_woo"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: str = Field(index=True)
    name: str = Field(default="Unnamed Product")
    sku: Optional[str] = None
    price: float = 0.0
    status: Optional[str] = None
    updated_at: datetime = Field(default_factory=utcnow)


class ProductCategory(SQLModel, table=True):
    __tablename__ = "product_categories"
    __table_args__ = (
        UniqueConstraint("store_id", "woo_id", name="uq_category_store_woo"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: Optional[str] = Field(default=None, index=True)
    name: str
    slug: Optional[str] = None


class ProductCategoryLink(SQLModel, table=True):
    """Many-to-many link; pruned to exactly the remote category set."""

    __tablename__ = "product_category_links"
    __table_args__ = (
        UniqueConstraint("product_id", "category_id", name="uq_product_category"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    category_id: int = Field(foreign_key="product_categories.id", index=True)


class Customer(SQLModel, table=True):
    """Buyer identity.

    Guests have no ``woo_id`` and are keyed by email; a synthesized
    placeholder email is used when the remote record carries none.
    """

    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("store_id", "woo_id", name="uq_customer_store_woo"),
        UniqueConstraint("store_id", "email", name="uq_customer_store_email"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: Optional[str] = Field(default=None, index=True)
    email: str = Field(index=True)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    last_active_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class Order(SQLModel, table=True):
    """Transaction. Money fields are the remote snapshot, never recomputed."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("store_id", "woo_id", name="uq_order_store_woo"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: str = Field(index=True)
    customer_id: Optional[int] = Field(
        default=None, foreign_key="customers.id", index=True
    )
    created_at: datetime = Field(index=True)
    status: Optional[str] = None
    currency: Optional[str] = None
    billing_email: Optional[str] = Field(default=None, index=True)
    total: float = 0.0
    subtotal: Optional[float] = None
    discount_total: Optional[float] = None
    shipping_total: Optional[float] = None
    tax_total: Optional[float] = None
    payment_method: Optional[str] = None
    shipping_country: Optional[str] = None
    shipping_city: Optional[str] = None
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    woo_line_id: Optional[str] = None
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    name: str = Field(default="Line Item")
    sku: Optional[str] = None
    quantity: int = 1
    unit_price: Optional[float] = None
    line_subtotal: Optional[float] = None
    line_total: Optional[float] = None
    tax_total: Optional[float] = None


class Coupon(SQLModel, table=True):
    __tablename__ = "coupons"
    __table_args__ = (UniqueConstraint("store_id", "code", name="uq_coupon_store_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: Optional[str] = None
    code: str = Field(index=True)
    discount_type: Optional[str] = None
    amount: float = 0.0
    date_expires: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: Optional[int] = None


class OrderCoupon(SQLModel, table=True):
    __tablename__ = "order_coupons"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    coupon_id: int = Field(foreign_key="coupons.id", index=True)
    discount_applied: float = 0.0
    revenue_impact: float = 0.0


class Refund(SQLModel, table=True):
    __tablename__ = "refunds"

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    woo_id: Optional[str] = None
    amount: float = 0.0
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)


class OrderAttribution(SQLModel, table=True):
    """First-touch UTM metadata. One row per order, upserted in place."""

    __tablename__ = "order_attributions"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", unique=True)
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None


class Subscription(SQLModel, table=True):
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("store_id", "woo_id", name="uq_subscription_store_woo"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    woo_id: str = Field(index=True)
    customer_id: int = Field(foreign_key="customers.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    status: str = "unknown"
    billing_interval: int = 1
    billing_period: str = "month"
    started_at: datetime = Field(default_factory=utcnow)
    next_payment_at: Optional[datetime] = None
    recurring_amount: float = 0.0
