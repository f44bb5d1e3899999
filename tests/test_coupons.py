"""Tests for the coupon repository and coupon API endpoints."""

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from pricing_engine.core.database import get_db
from pricing_engine.main import app
from pricing_engine.models.coupon import CouponType
from pricing_engine.repositories.coupon_redemption_repository import CouponRedemptionRepository
from pricing_engine.repositories.coupon_repository import CouponRepository
from pricing_engine.schemas.coupon import CouponCreate, CouponTemplate, CouponUpdate
from tests.conftest import DEFAULT_ORG_ID


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def _future(days: int = 30) -> str:
    return (datetime.now(UTC) + timedelta(days=days)).isoformat()


def _coupon_payload(code: str = "SAVE10", **overrides) -> dict:
    payload = {
        "code": code,
        "name": "Save 10%",
        "coupon_type": "percentage",
        "value": "10",
        "valid_until": _future(),
    }
    payload.update(overrides)
    return payload


def _create_data(code: str = "SAVE10", **overrides) -> CouponCreate:
    defaults = {
        "code": code,
        "name": "Save 10%",
        "coupon_type": CouponType.PERCENTAGE,
        "value": Decimal("10"),
        "valid_until": datetime.now(UTC) + timedelta(days=30),
    }
    defaults.update(overrides)
    return CouponCreate(**defaults)


class TestCouponSchemas:
    def test_code_is_upper_cased(self):
        assert _create_data(code=" summer-24 ").code == "SUMMER-24"

    def test_code_rejects_spaces(self):
        with pytest.raises(ValidationError):
            _create_data(code="SUMMER SALE")

    def test_percentage_over_hundred(self):
        with pytest.raises(ValidationError):
            _create_data(value=Decimal("101"))

    def test_fixed_over_hundred_allowed(self):
        assert _create_data(coupon_type=CouponType.FIXED, value=Decimal("150")).value == 150

    def test_valid_until_before_valid_from(self):
        now = datetime.now(UTC)
        with pytest.raises(ValidationError):
            _create_data(valid_from=now, valid_until=now - timedelta(days=1))

    def test_buy_x_get_y_requires_quantities(self):
        with pytest.raises(ValidationError):
            _create_data(coupon_type=CouponType.BUY_X_GET_Y, buy_quantity=2)

    def test_bogo_requires_quantities(self):
        with pytest.raises(ValidationError):
            _create_data(coupon_type=CouponType.BOGO, get_quantity=1)

    def test_bogo_with_quantities(self):
        data = _create_data(coupon_type=CouponType.BOGO, buy_quantity=1, get_quantity=1)
        assert data.coupon_type == CouponType.BOGO


class TestCouponRepository:
    def test_create_and_get_by_code(self, db_session):
        repo = CouponRepository(db_session)
        coupon = repo.create(_create_data(), DEFAULT_ORG_ID)
        assert coupon.usage_count == 0
        assert coupon.valid_from is not None
        assert repo.get_by_code("save10", DEFAULT_ORG_ID).id == coupon.id

    def test_code_exists_is_scoped(self, db_session):
        repo = CouponRepository(db_session)
        repo.create(_create_data(), DEFAULT_ORG_ID)
        assert repo.code_exists("SAVE10", DEFAULT_ORG_ID) is True
        assert repo.code_exists("SAVE10", uuid.uuid4()) is False

    def test_create_many(self, db_session):
        repo = CouponRepository(db_session)
        template = CouponTemplate(
            name="Bulk",
            coupon_type=CouponType.FIXED,
            value=Decimal("5"),
            valid_until=datetime.now(UTC) + timedelta(days=1),
        )
        coupons = repo.create_many(template, ["aaa111", "BBB222"], DEFAULT_ORG_ID)
        assert [c.code for c in coupons] == ["AAA111", "BBB222"]
        assert repo.count(DEFAULT_ORG_ID) == 2

    def test_update_partial(self, db_session):
        repo = CouponRepository(db_session)
        repo.create(_create_data(min_order_value=Decimal("50")), DEFAULT_ORG_ID)
        updated = repo.update(
            "SAVE10", CouponUpdate(name="Renamed", min_order_value=None), DEFAULT_ORG_ID
        )
        assert updated is not None
        assert updated.name == "Renamed"
        assert updated.min_order_value is None
        assert updated.value == Decimal("10")

    def test_delete_removes_redemptions(self, db_session):
        repo = CouponRepository(db_session)
        coupon = repo.create(_create_data(), DEFAULT_ORG_ID)
        redemption_repo = CouponRedemptionRepository(db_session)
        redemption_repo.create(coupon.id, "cust-1")

        assert repo.delete("SAVE10", DEFAULT_ORG_ID) is True
        assert redemption_repo.get_by_coupon_id(coupon.id) == []
        assert repo.delete("SAVE10", DEFAULT_ORG_ID) is False


class TestCouponRedemptionRepository:
    def test_usage_by_customer(self, db_session):
        coupon_repo = CouponRepository(db_session)
        save10 = coupon_repo.create(_create_data("SAVE10"), DEFAULT_ORG_ID)
        take5 = coupon_repo.create(_create_data("TAKE5"), DEFAULT_ORG_ID)
        repo = CouponRedemptionRepository(db_session)
        repo.create(save10.id, "cust-1")
        repo.create(save10.id, "cust-1")
        repo.create(take5.id, "cust-1")
        repo.create(take5.id, "cust-2")

        assert repo.usage_by_customer("cust-1", DEFAULT_ORG_ID) == {"SAVE10": 2, "TAKE5": 1}
        assert repo.usage_by_customer("cust-3", DEFAULT_ORG_ID) == {}
        assert repo.usage_by_customer("", DEFAULT_ORG_ID) == {}
        assert repo.count(DEFAULT_ORG_ID) == 4

    def test_top_coupons(self, db_session):
        coupon_repo = CouponRepository(db_session)
        a = coupon_repo.create(_create_data("AAA", name="A"), DEFAULT_ORG_ID)
        b = coupon_repo.create(_create_data("BBB", name="B"), DEFAULT_ORG_ID)
        repo = CouponRedemptionRepository(db_session)
        repo.create(a.id, "c1")
        repo.create(b.id, "c1")
        repo.create(b.id, "c2")

        assert repo.top_coupons(DEFAULT_ORG_ID) == [("BBB", "B", 2), ("AAA", "A", 1)]


class TestCouponsAPI:
    def test_create_coupon(self, client: TestClient):
        response = client.post("/v1/coupons/", json=_coupon_payload("summer"))
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "SUMMER"
        assert data["coupon_type"] == "percentage"
        assert Decimal(data["value"]) == Decimal("10")
        assert data["usage_count"] == 0
        assert data["is_active"] is True

    def test_create_duplicate_code(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.post("/v1/coupons/", json=_coupon_payload("save10"))
        assert response.status_code == 409

    def test_same_code_in_other_organization(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.post(
            "/v1/coupons/",
            json=_coupon_payload(),
            headers={"X-Organization-Id": str(uuid.uuid4())},
        )
        assert response.status_code == 201

    def test_create_validation_error(self, client: TestClient):
        response = client.post("/v1/coupons/", json=_coupon_payload(value="150"))
        assert response.status_code == 422

    def test_list_coupons(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload("AAA"))
        client.post("/v1/coupons/", json=_coupon_payload("BBB", is_active=False))
        client.post(
            "/v1/coupons/", json=_coupon_payload("CCC", coupon_type="fixed", value="5")
        )

        response = client.get("/v1/coupons/")
        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        assert len(response.json()) == 3

        active = client.get("/v1/coupons/", params={"is_active": True})
        assert {c["code"] for c in active.json()} == {"AAA", "CCC"}

        fixed = client.get("/v1/coupons/", params={"coupon_type": "fixed"})
        assert [c["code"] for c in fixed.json()] == ["CCC"]

    def test_get_coupon_case_insensitive(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.get("/v1/coupons/save10")
        assert response.status_code == 200
        assert response.json()["code"] == "SAVE10"

    def test_get_coupon_not_found(self, client: TestClient):
        assert client.get("/v1/coupons/NOPE").status_code == 404

    def test_update_coupon(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.put("/v1/coupons/SAVE10", json={"is_active": False, "max_usages": 3})
        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["max_usages"] == 3

    def test_update_coupon_not_found(self, client: TestClient):
        assert client.put("/v1/coupons/NOPE", json={"name": "x"}).status_code == 404

    def test_update_percentage_over_hundred(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.put("/v1/coupons/SAVE10", json={"value": "150"})
        assert response.status_code == 422
        assert Decimal(client.get("/v1/coupons/SAVE10").json()["value"]) == Decimal("10")

    def test_update_fixed_over_hundred_allowed(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(coupon_type="fixed", value="5"))
        response = client.put("/v1/coupons/SAVE10", json={"value": "150"})
        assert response.status_code == 200
        assert Decimal(response.json()["value"]) == Decimal("150")

    def test_update_valid_until_before_stored_valid_from(self, client: TestClient):
        client.post(
            "/v1/coupons/",
            json=_coupon_payload(valid_from=datetime.now(UTC).isoformat()),
        )
        past = (datetime.now(UTC) - timedelta(days=400)).isoformat()
        response = client.put("/v1/coupons/SAVE10", json={"valid_until": past})
        assert response.status_code == 422

    def test_update_valid_from_after_stored_valid_until(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(valid_until=_future(10)))
        response = client.put("/v1/coupons/SAVE10", json={"valid_from": _future(20)})
        assert response.status_code == 422

    def test_update_moves_whole_window(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(valid_until=_future(10)))
        response = client.put(
            "/v1/coupons/SAVE10",
            json={"valid_from": _future(20), "valid_until": _future(40)},
        )
        assert response.status_code == 200

    def test_delete_coupon(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        assert client.delete("/v1/coupons/SAVE10").status_code == 204
        assert client.get("/v1/coupons/SAVE10").status_code == 404
        assert client.delete("/v1/coupons/SAVE10").status_code == 404

    def test_generate_coupons(self, client: TestClient):
        response = client.post(
            "/v1/coupons/generate",
            json={
                "count": 5,
                "prefix": "vip-",
                "length": 6,
                "template": {
                    "name": "VIP",
                    "coupon_type": "fixed",
                    "value": "5",
                    "valid_until": _future(),
                },
            },
        )
        assert response.status_code == 201
        codes = response.json()["codes"]
        assert len(codes) == 5
        assert len(set(codes)) == 5
        assert all(code.startswith("VIP-") and len(code) == 10 for code in codes)
        assert client.get("/v1/coupons/").headers["X-Total-Count"] == "5"

    def test_generate_too_many(self, client: TestClient):
        response = client.post(
            "/v1/coupons/generate",
            json={
                "count": 100000,
                "template": {"name": "X", "coupon_type": "fixed", "valid_until": _future()},
            },
        )
        assert response.status_code == 422

    def test_validate_coupon(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(min_order_value="150"))
        response = client.post(
            "/v1/coupons/validate",
            json={
                "code": "save10",
                "items": [{"product_id": "sku-1", "quantity": 5, "price": "40"}],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["code"] == "SAVE10"
        assert Decimal(data["discount"]) == Decimal("20")
        assert data["message"] == "10% off applied! You saved $20.00"
        assert data["effect"]["coupon_type"] == "percentage"

    def test_validate_coupon_rejection_is_not_an_error(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(min_order_value="150"))
        response = client.post(
            "/v1/coupons/validate",
            json={
                "code": "SAVE10",
                "items": [{"product_id": "sku-1", "quantity": 1, "price": "100"}],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is False
        assert data["error"] == "Minimum order value of $150.00 required"
        assert data["effect"] is None

    def test_validate_unknown_coupon(self, client: TestClient):
        response = client.post(
            "/v1/coupons/validate",
            json={"code": "NOPE", "items": [{"product_id": "a", "quantity": 1, "price": "1"}]},
        )
        assert response.json()["error"] == "Invalid coupon code"

    def test_validate_uses_explicit_subtotal(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(min_order_value="150"))
        response = client.post(
            "/v1/coupons/validate",
            json={
                "code": "SAVE10",
                "items": [{"product_id": "sku-1", "quantity": 1, "price": "100"}],
                "subtotal": "300",
            },
        )
        assert response.json()["valid"] is True

    def test_redeem_coupon(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        response = client.post(
            "/v1/coupons/save10/redeem",
            json={"customer_id": "cust-1", "order_reference": "ORD-1"},
        )
        assert response.status_code == 201
        assert response.json()["customer_id"] == "cust-1"
        assert response.json()["order_reference"] == "ORD-1"
        assert client.get("/v1/coupons/SAVE10").json()["usage_count"] == 1

    def test_list_redemptions(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload())
        client.post("/v1/coupons/SAVE10/redeem", json={"customer_id": "cust-1"})
        client.post(
            "/v1/coupons/SAVE10/redeem",
            json={"customer_id": "cust-2", "order_reference": "ORD-2"},
        )

        response = client.get("/v1/coupons/save10/redemptions")
        assert response.status_code == 200
        redemptions = response.json()
        assert len(redemptions) == 2
        assert {r["customer_id"] for r in redemptions} == {"cust-1", "cust-2"}

    def test_list_redemptions_not_found(self, client: TestClient):
        assert client.get("/v1/coupons/NOPE/redemptions").status_code == 404

    def test_redeem_not_found(self, client: TestClient):
        response = client.post("/v1/coupons/NOPE/redeem", json={"customer_id": "c"})
        assert response.status_code == 404

    def test_redeem_exhausted(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(max_usages=1))
        client.post("/v1/coupons/SAVE10/redeem", json={"customer_id": "c1"})
        response = client.post("/v1/coupons/SAVE10/redeem", json={"customer_id": "c2"})
        assert response.status_code == 400
        assert response.json()["detail"] == "This coupon has reached its usage limit"

    def test_per_customer_limit_applies_to_validation(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload(max_usages_per_customer=1))
        client.post("/v1/coupons/SAVE10/redeem", json={"customer_id": "cust-1"})

        body = {
            "code": "SAVE10",
            "items": [{"product_id": "sku-1", "quantity": 1, "price": "10"}],
            "customer": {"id": "cust-1"},
        }
        data = client.post("/v1/coupons/validate", json=body).json()
        assert data["valid"] is False
        assert data["error"] == "You have already used this coupon the maximum number of times"

        body["customer"] = {"id": "cust-2"}
        assert client.post("/v1/coupons/validate", json=body).json()["valid"] is True

    def test_statistics(self, client: TestClient):
        client.post("/v1/coupons/", json=_coupon_payload("AAA"))
        client.post("/v1/coupons/", json=_coupon_payload("BBB", is_active=False))
        client.post("/v1/coupons/AAA/redeem", json={"customer_id": "c1"})
        client.post("/v1/coupons/AAA/redeem", json={"customer_id": "c2"})

        data = client.get("/v1/coupons/statistics").json()
        assert data["total_coupons"] == 2
        assert data["active_coupons"] == 1
        assert data["total_redemptions"] == 2
        assert data["top_coupons"] == [{"code": "AAA", "name": "Save 10%", "redemptions": 2}]
