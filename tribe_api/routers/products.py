# tribe_api/routers/products.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from tribe_api import catalog
from tribe_api.catalog import Resource, load_resource, PRODUCTS_LOAD_ERROR
from tribe_api.db.session import get_session
from tribe_api.db.crud import list_published_products
from tribe_api.security import AuthState, require_user

router = APIRouter(prefix="/products", tags=["products"])


async def _published() -> list:
    async with get_session() as s:
        return await list_published_products(s)


async def load_products() -> Resource[list]:
    return await load_resource(_published, [], PRODUCTS_LOAD_ERROR)


def _data_or_500(res: Resource[list]) -> list:
    if res.error:
        raise HTTPException(status_code=500, detail=res.error)
    return res.data


@router.get("")
async def list_products(
    search: str = "",
    category: Optional[str] = None,
    product_type: Optional[str] = None,
    state: AuthState = Depends(require_user),
):
    products = _data_or_500(await load_products())
    found = catalog.search(products, search, category, product_type)
    return {
        "total": len(products),
        "categories": catalog.categories(products),
        "product_types": catalog.product_types(products),
        "products": catalog.product_cards(found),
    }


@router.get("/featured")
async def featured_products(limit: int = Query(3, ge=1, le=50), state: AuthState = Depends(require_user)):
    products = _data_or_500(await load_products())
    return {"products": catalog.product_cards(catalog.featured(products, limit))}


@router.get("/courses")
async def list_courses(
    search: str = "",
    category: Optional[str] = None,
    state: AuthState = Depends(require_user),
):
    products = _data_or_500(await load_products())
    found = catalog.courses(products, search, category)
    return {"categories": catalog.categories(products), "products": catalog.product_cards(found)}


@router.get("/recommendations")
async def recommendations(
    result_type: Optional[str] = None,
    product_type: Optional[str] = None,
    limit: int = Query(3, ge=1, le=50),
    state: AuthState = Depends(require_user),
):
    products = _data_or_500(await load_products())
    return {"products": catalog.product_cards(catalog.recommend(products, result_type, product_type, limit))}


@router.get("/category/{category}")
async def products_by_category(category: str, state: AuthState = Depends(require_user)):
    products = _data_or_500(await load_products())
    return {"products": catalog.product_cards(catalog.by_category(products, category))}
