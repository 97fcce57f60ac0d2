# tribe_api/routers/dashboard.py
from fastapi import APIRouter, Depends

from tribe_api import catalog
from tribe_api.routers.auth import auth_state_out
from tribe_api.routers.products import load_products
from tribe_api.security import AuthState, require_user

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
async def dashboard(state: AuthState = Depends(require_user)):
    """
    Landing data after login: who the user is, admin flag, a few products.
    A catalog failure does not break the dashboard; it is reported in products_error.
    """
    res = await load_products()
    return {
        "user": auth_state_out(state),
        "featured_products": catalog.product_cards(catalog.featured(res.data)),
        "products_error": res.error,
    }
