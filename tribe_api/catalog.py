"""
Product/course catalog helpers over the mirrored WooCommerce products.

Loading goes through ``load_resource`` so every screen-backing query shares
the same ``{data, loading, error}`` shape.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from tribe_api.db.models import WooCommerceProduct
from tribe_api.persian import (
    format_persian_price,
    format_persian_discount,
    get_persian_product_type,
    get_product_cta,
)
from tribe_api.schemas import ProductCard

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PRODUCT_TYPE = "course"
PRODUCTS_LOAD_ERROR = "خطا در بارگذاری محصولات"

# result label -> keywords looked up in names/categories
RESULT_KEYWORDS = {
    "کوچینگ": ("کوچینگ",),
    "تراپی": ("درمان", "تراپی"),
    "منتورینگ": ("منتور",),
}
FALLBACK_CATEGORIES = ("توسعه فردی", "آموزش")


@dataclass
class Resource(Generic[T]):
    """
    ``{data, loading, error}`` as the screens consume it. ``load_resource``
    awaits the query before returning, so ``loading`` is always False here;
    it stays in the shape for callers that render it.
    """
    data: T
    loading: bool = False
    error: Optional[str] = None


async def load_resource(
    query: Callable[[], Awaitable[T]],
    default: T,
    error_message: str,
) -> Resource[T]:
    """Run one query; a storage failure is reported in ``error`` and ``data`` keeps the default."""
    try:
        return Resource(data=await query())
    except SQLAlchemyError as e:
        logger.error("%s: %s", error_message, e)
        return Resource(data=default, error=error_message)


# ===== filters =====
def featured(products: Sequence[WooCommerceProduct], limit: int = 3) -> List[WooCommerceProduct]:
    return [p for p in products if p.in_stock][:limit]


def by_category(products: Sequence[WooCommerceProduct], category: str) -> List[WooCommerceProduct]:
    return [p for p in products if p.in_stock and category in (p.categories or [])]


def by_type(products: Sequence[WooCommerceProduct], product_type: str) -> List[WooCommerceProduct]:
    return [p for p in products if p.in_stock and p.product_type == product_type]


def _type_of(product: WooCommerceProduct) -> str:
    return product.product_type or DEFAULT_PRODUCT_TYPE


def courses(
    products: Sequence[WooCommerceProduct],
    term: str = "",
    category: Optional[str] = None,
) -> List[WooCommerceProduct]:
    """In-stock products typed as course; untyped products count as courses."""
    return search(products, term, category, DEFAULT_PRODUCT_TYPE)


def categories(products: Sequence[WooCommerceProduct]) -> List[str]:
    return list(dict.fromkeys(c for p in products for c in (p.categories or [])))


def product_types(products: Sequence[WooCommerceProduct]) -> List[str]:
    return list(dict.fromkeys(_type_of(p) for p in products))


def search(
    products: Sequence[WooCommerceProduct],
    term: str = "",
    category: Optional[str] = None,
    product_type: Optional[str] = None,
) -> List[WooCommerceProduct]:
    needle = (term or "").lower()

    def matches(p: WooCommerceProduct) -> bool:
        haystacks = (p.name or "", p.description or "", p.short_description or "")
        if needle and not any(needle in h.lower() for h in haystacks):
            return False
        if category and category not in (p.categories or []):
            return False
        if product_type and _type_of(p) != product_type:
            return False
        return bool(p.in_stock)

    return [p for p in products if matches(p)]


def recommend(
    products: Sequence[WooCommerceProduct],
    result_type: Optional[str] = None,
    product_type: Optional[str] = None,
    limit: int = 3,
) -> List[WooCommerceProduct]:
    filtered = [p for p in products if p.in_stock]
    if product_type:
        filtered = [p for p in filtered if p.product_type == product_type]

    keywords = RESULT_KEYWORDS.get(result_type or "")
    if keywords:
        filtered = [
            p for p in filtered
            if any(k in (p.name or "") for k in keywords)
            or any(k in c for c in (p.categories or []) for k in keywords)
        ]

    if not filtered:
        filtered = [
            p for p in products
            if p.in_stock and any(c in (p.categories or []) for c in FALLBACK_CATEGORIES)
        ]
    if not filtered:
        filtered = [p for p in products if p.in_stock]

    return filtered[:limit]


# ===== card view =====
def product_card(product: WooCommerceProduct) -> ProductCard:
    regular = float(product.regular_price or 0)
    sale = product.sale_price
    has_discount = bool(sale) and sale < regular
    display_price = float(sale or product.price or 0)
    discount = round((regular - sale) / regular * 100) if has_discount else 0
    product_type = _type_of(product)

    return ProductCard(
        id=product.id,
        woocommerce_id=product.woocommerce_id,
        name=product.name,
        short_description=product.short_description,
        image_url=product.image_url,
        product_url=product.product_url,
        categories=list(product.categories or [])[:3],
        product_type=product_type,
        type_label=get_persian_product_type(product_type),
        in_stock=bool(product.in_stock),
        has_discount=has_discount,
        display_price=display_price,
        regular_price=regular,
        discount_percentage=discount,
        price_label=format_persian_price(display_price),
        regular_price_label=format_persian_price(regular) if has_discount else None,
        discount_label=format_persian_discount(discount) if has_discount else None,
        cta=get_product_cta(product_type, display_price),
    )


def product_cards(products: Sequence[Any]) -> List[ProductCard]:
    return [product_card(p) for p in products]
