"""WooMirror: Product & Category Synchronizer."""

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from woomirror.connectors.woo.transformer import map_categories, map_product
from woomirror.core.clock import utcnow
from woomirror.models.mirror_models import Product, ProductCategory, ProductCategoryLink
from woomirror.models.sync_models import SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.identity import BY_WOO_ID, category_plan, first_match
from woomirror.sync.outcomes import attempt, failed_phase, summarize
from woomirror.sync.replace_set import replace_set


def find_product(session: Session, store_id: int, woo_id: Optional[str]) -> Optional[Product]:
    if not woo_id:
        return None
    return session.exec(
        select(Product).where(Product.store_id == store_id, Product.woo_id == woo_id)
    ).first()


def resolve_category(session: Session, store_id: int, payload: Dict[str, Any]) -> ProductCategory:
    """Match by remote id, then by name; update the match or create a new row."""

    def lookup(strategy: str, key: Any) -> Optional[ProductCategory]:
        column = ProductCategory.woo_id if strategy == BY_WOO_ID else ProductCategory.name
        return session.exec(
            select(ProductCategory).where(
                ProductCategory.store_id == store_id, column == key
            )
        ).first()

    _, category = first_match(category_plan(payload["woo_id"], payload["name"]), lookup)
    if category is None:
        category = ProductCategory(store_id=store_id, **payload)
    else:
        category.woo_id = payload["woo_id"]
        category.name = payload["name"]
        category.slug = payload["slug"]
    session.add(category)
    session.flush()
    return category


def sync_product_categories(
    session: Session, store_id: int, product: Product, categories: List[Dict[str, Any]]
) -> None:
    """Make the product's link set exactly the remote category set."""
    desired = {}
    for payload in categories:
        category = resolve_category(session, store_id, payload)
        desired[category.id] = {"category_id": category.id}

    existing = session.exec(
        select(ProductCategoryLink).where(ProductCategoryLink.product_id == product.id)
    ).all()
    replace_set(
        session,
        existing,
        desired,
        row_key=lambda link: link.category_id,
        build=lambda values: ProductCategoryLink(product_id=product.id, **values),
    )


def upsert_product(session: Session, store_id: int, raw: Dict[str, Any]) -> Product:
    fields = map_product(raw)
    product = find_product(session, store_id, fields["woo_id"])
    if product is None:
        product = Product(store_id=store_id, **fields)
    else:
        for column, value in fields.items():
            setattr(product, column, value)
        product.updated_at = utcnow()
    session.add(product)
    session.flush()

    sync_product_categories(session, store_id, product, map_categories(raw))
    session.commit()
    return product


async def sync_products(ctx: SyncContext) -> SyncStats:
    """Mirror all products (any status) and their category links."""
    res = await ctx.client.fetch_all("products", {"status": "any"})
    if not res.success:
        ctx.logger.warning(
            f"Products fetch failed: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "products"},
        )
        return failed_phase("products", f"Failed to load products: {res.error}")

    outcomes = [
        attempt(ctx.session, lambda raw=raw: upsert_product(ctx.session, ctx.store_id, raw))
        for raw in res.data
    ]
    stats = summarize("products", outcomes)
    ctx.log(
        "Products synced",
        entity="products",
        processed=stats.processed,
        warnings=len(stats.warnings),
    )
    return stats
