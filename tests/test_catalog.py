"""Catalog filters, product cards and the products/dashboard endpoints."""
import pytest
from sqlalchemy.exc import SQLAlchemyError

from tribe_api import catalog
from tribe_api.catalog import PRODUCTS_LOAD_ERROR, Resource, load_resource
from tribe_api.db import crud
from tribe_api.routers import products as products_router
from helpers import in_session, make_product, run, signup_and_login


@pytest.fixture
def shelf():
    return [
        make_product(id=1, woocommerce_id=101, name="دوره کوچینگ فردی", categories=["کوچینگ"], product_type="course"),
        make_product(id=2, woocommerce_id=102, name="کتاب ذهن آگاهی", categories=["کتاب", "توسعه فردی"], product_type="ebook"),
        make_product(id=3, woocommerce_id=103, name="کارگاه درمان اضطراب", categories=["تراپی"], product_type="workshop"),
        make_product(id=4, woocommerce_id=104, name="دوره تمام شده", categories=["کوچینگ"], in_stock=False),
        make_product(id=5, woocommerce_id=105, name="Mentor Notes", description="Weekly NOTES", categories=["آموزش"]),
    ]


class TestFilters:
    def test_featured_skips_out_of_stock(self, shelf):
        assert [p.id for p in catalog.featured(shelf)] == [1, 2, 3]
        assert [p.id for p in catalog.featured(shelf, limit=1)] == [1]

    def test_by_category(self, shelf):
        assert [p.id for p in catalog.by_category(shelf, "کوچینگ")] == [1]

    def test_by_type(self, shelf):
        assert [p.id for p in catalog.by_type(shelf, "ebook")] == [2]

    def test_untyped_products_are_courses(self, shelf):
        assert [p.id for p in catalog.courses(shelf)] == [1, 5]
        assert catalog.product_types(shelf) == ["course", "ebook", "workshop"]

    def test_categories_are_unique_in_order(self, shelf):
        assert catalog.categories(shelf) == ["کوچینگ", "کتاب", "توسعه فردی", "تراپی", "آموزش"]

    def test_search_is_case_insensitive_over_description(self, shelf):
        assert [p.id for p in catalog.search(shelf, "notes")] == [5]
        assert [p.id for p in catalog.search(shelf, "دوره")] == [1]
        assert [p.id for p in catalog.search(shelf, "", category="کتاب")] == [2]
        assert [p.id for p in catalog.search(shelf, "", product_type="workshop")] == [3]

    def test_course_search_includes_untyped_products(self, shelf):
        assert [p.id for p in catalog.search(shelf, "", product_type="course")] == [1, 5]
        assert [p.id for p in catalog.courses(shelf, "notes")] == [5]
        assert [p.id for p in catalog.courses(shelf, "", category="کوچینگ")] == [1]


class TestRecommend:
    def test_matches_result_keywords(self, shelf):
        assert [p.id for p in catalog.recommend(shelf, "تراپی")] == [3]
        assert [p.id for p in catalog.recommend(shelf, "کوچینگ")] == [1]

    def test_falls_back_to_general_categories(self, shelf):
        assert [p.id for p in catalog.recommend(shelf, "منتورینگ")] == [2, 5]

    def test_falls_back_to_anything_in_stock(self):
        items = [make_product(id=1, categories=["ورزش"])]
        assert [p.id for p in catalog.recommend(items, "منتورینگ")] == [1]

    def test_no_result_type_returns_in_stock(self, shelf):
        assert [p.id for p in catalog.recommend(shelf, limit=2)] == [1, 2]


class TestProductCard:
    def test_discounted_card(self):
        card = catalog.product_card(make_product(price=150000.0, sale_price=150000.0, regular_price=200000.0))
        assert card.has_discount is True
        assert card.discount_percentage == 25
        assert card.display_price == 150000
        assert card.price_label == "۱۵۰٬۰۰۰ تومان"
        assert card.regular_price_label == "۲۰۰٬۰۰۰ تومان"
        assert card.discount_label == "۲۵% تخفیف"
        assert card.type_label == "دوره"
        assert card.cta == "شرکت در دوره"

    def test_free_card(self):
        card = catalog.product_card(make_product(price=0.0, regular_price=0.0, product_type="ebook"))
        assert card.has_discount is False
        assert card.price_label == "رایگان"
        assert card.cta == "دریافت رایگان"
        assert card.discount_label is None

    def test_sale_above_regular_is_not_a_discount(self):
        card = catalog.product_card(make_product(sale_price=120000.0, regular_price=100000.0))
        assert card.has_discount is False
        assert card.display_price == 120000

    def test_at_most_three_categories(self):
        card = catalog.product_card(make_product(categories=["a", "b", "c", "d"]))
        assert card.categories == ["a", "b", "c"]


def test_load_resource_reports_storage_errors():
    async def broken():
        raise SQLAlchemyError("db down")

    async def ok():
        return [1]

    assert run(load_resource(ok, [], "err")) == Resource(data=[1])
    res = run(load_resource(broken, [], "err"))
    assert res.data == []
    assert res.error == "err"
    assert res.loading is False


def store(**kw):
    data = {
        "woocommerce_id": kw.pop("woocommerce_id"),
        "name": kw.pop("name"),
        "price": 100000.0,
        "regular_price": 100000.0,
        "categories": kw.pop("categories", []),
        "status": kw.pop("status", "publish"),
        "in_stock": kw.pop("in_stock", True),
    }
    data.update(kw)
    in_session(crud.upsert_product, data)


class TestEndpoints:
    def test_requires_login(self, client):
        assert client.get("/products").status_code == 401

    def test_list_and_search(self, client):
        user = signup_and_login(client)
        store(woocommerce_id=1, name="دوره کوچینگ", categories=["کوچینگ"])
        store(woocommerce_id=2, name="کتاب", categories=["کتاب"], product_type="ebook")
        store(woocommerce_id=3, name="پیش نویس", status="draft")

        body = client.get("/products", headers=user["headers"]).json()
        assert body["total"] == 2
        assert sorted(body["categories"]) == ["کتاب", "کوچینگ"]
        assert {p["name"] for p in body["products"]} == {"دوره کوچینگ", "کتاب"}

        body = client.get("/products", params={"product_type": "ebook"}, headers=user["headers"]).json()
        assert [p["name"] for p in body["products"]] == ["کتاب"]

        body = client.get("/products/courses", headers=user["headers"]).json()
        assert [p["name"] for p in body["products"]] == ["دوره کوچینگ"]

        body = client.get("/products/category/کتاب", headers=user["headers"]).json()
        assert [p["name"] for p in body["products"]] == ["کتاب"]

        body = client.get("/products/recommendations", params={"result_type": "کوچینگ"}, headers=user["headers"]).json()
        assert [p["name"] for p in body["products"]] == ["دوره کوچینگ"]

    def test_courses_search(self, client):
        user = signup_and_login(client)
        store(woocommerce_id=1, name="دوره کوچینگ", short_description="مسیر شغلی")
        store(woocommerce_id=2, name="دوره تراپی", product_type="course")
        store(woocommerce_id=3, name="کتاب شغلی", product_type="ebook")

        body = client.get("/products/courses", params={"search": "شغلی"}, headers=user["headers"]).json()
        assert [p["name"] for p in body["products"]] == ["دوره کوچینگ"]

        body = client.get("/products/courses", headers=user["headers"]).json()
        assert sorted(p["name"] for p in body["products"]) == ["دوره تراپی", "دوره کوچینگ"]

    def test_storage_failure_is_500(self, client, monkeypatch):
        user = signup_and_login(client)

        async def broken():
            raise SQLAlchemyError("db down")

        monkeypatch.setattr(products_router, "_published", broken)
        r = client.get("/products/featured", headers=user["headers"])
        assert r.status_code == 500
        assert r.json()["detail"] == PRODUCTS_LOAD_ERROR


class TestDashboard:
    def test_dashboard(self, client):
        user = signup_and_login(client, role="admin")
        store(woocommerce_id=1, name="دوره کوچینگ")
        body = client.get("/dashboard", headers=user["headers"]).json()
        assert body["user"]["is_admin"] is True
        assert [p["name"] for p in body["featured_products"]] == ["دوره کوچینگ"]
        assert body["products_error"] is None

    def test_catalog_failure_keeps_dashboard_up(self, client, monkeypatch):
        user = signup_and_login(client)

        async def broken():
            raise SQLAlchemyError("db down")

        monkeypatch.setattr(products_router, "_published", broken)
        r = client.get("/dashboard", headers=user["headers"])
        assert r.status_code == 200
        assert r.json()["featured_products"] == []
        assert r.json()["products_error"] == PRODUCTS_LOAD_ERROR
