"""Tests for the price calculation API endpoints."""

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from pricing_engine.main import app

AS_OF = "2026-06-15T12:00:00Z"
ITEM = {"product_id": "sku-1", "product_name": "Widget", "quantity": 5, "price": "40"}


@pytest.fixture
def client():
    return TestClient(app)


def _create_rule(client: TestClient, name: str, percent: str, **overrides) -> str:
    payload = {
        "name": name,
        "rule_type": "volume_discount",
        "conditions": [{"field": "quantity", "operator": "gte", "value": 5}],
        "actions": [{"type": "percentage_discount", "value": percent}],
        "priority": 1,
        "start_date": "2026-01-01T00:00:00Z",
    }
    payload.update(overrides)
    response = client.post("/v1/pricing_rules/", json=payload)
    assert response.status_code == 201
    return response.json()["id"]


def _create_coupon(client: TestClient, code: str = "SAVE10", **overrides) -> None:
    payload = {
        "code": code,
        "name": code,
        "coupon_type": "percentage",
        "value": "10",
        "valid_from": "2026-06-01T00:00:00Z",
        "valid_until": "2026-07-01T00:00:00Z",
    }
    payload.update(overrides)
    assert client.post("/v1/coupons/", json=payload).status_code == 201


def _calculate(client: TestClient, **overrides) -> dict:
    body = {"item": ITEM, "as_of": AS_OF}
    body.update(overrides)
    response = client.post("/v1/pricing/calculate", json=body)
    assert response.status_code == 200
    return response.json()


class TestCalculatePrice:
    def test_no_rules(self, client: TestClient):
        data = _calculate(client)
        assert Decimal(data["subtotal"]) == Decimal("200")
        assert Decimal(data["final_price"]) == Decimal("200")
        assert data["discounts"] == []
        assert data["applied_rule_ids"] == []
        assert data["breakdown"] == "Base: $40.00 x 5 = $200.00\nFinal: $200.00"

    def test_single_rule(self, client: TestClient):
        rule_id = _create_rule(client, "Bulk", "10")
        data = _calculate(client)

        assert Decimal(data["final_price"]) == Decimal("180")
        assert Decimal(data["final_price_per_unit"]) == Decimal("36")
        assert Decimal(data["total_savings"]) == Decimal("20")
        assert data["applied_rule_ids"] == [rule_id]
        assert data["discounts"][0]["source"] == "rule"
        assert data["discounts"][0]["name"] == "Bulk"
        assert Decimal(data["discounts"][0]["percentage"]) == Decimal("10")

    def test_non_stackable_rule_blocks_the_rest(self, client: TestClient):
        first = _create_rule(client, "Exclusive", "20", is_stackable=False)
        _create_rule(client, "Bulk", "10", priority=2)

        data = _calculate(client)
        assert Decimal(data["final_price"]) == Decimal("160")
        assert data["applied_rule_ids"] == [first]

    def test_rule_and_coupon(self, client: TestClient):
        _create_rule(client, "Bulk", "10")
        _create_coupon(client, min_order_value="150")

        data = _calculate(client, coupon_codes=["save10"])
        assert Decimal(data["final_price"]) == Decimal("162")
        assert data["applied_coupon_codes"] == ["SAVE10"]
        assert data["rejected_coupons"] == []
        assert [d["source"] for d in data["discounts"]] == ["rule", "coupon"]

    def test_rejected_coupons_do_not_fail_the_request(self, client: TestClient):
        _create_coupon(client, min_order_value="500")

        data = _calculate(client, coupon_codes=["SAVE10", "NOPE"])
        assert Decimal(data["final_price"]) == Decimal("200")
        assert data["applied_coupon_codes"] == []
        assert data["rejected_coupons"] == [
            {"code": "SAVE10", "reason": "Minimum order value of $500.00 required"},
            {"code": "NOPE", "reason": "Invalid coupon code"},
        ]

    def test_order_total_drives_coupon_minimum(self, client: TestClient):
        _create_coupon(client, coupon_type="fixed", value="15", min_order_value="500")

        data = _calculate(client, coupon_codes=["SAVE10"], order_total="600")
        assert Decimal(data["final_price"]) == Decimal("185")

    def test_per_customer_coupon_usage_is_loaded(self, client: TestClient):
        _create_coupon(client, max_usages_per_customer=1)
        client.post("/v1/coupons/SAVE10/redeem", json={"customer_id": "cust-1"})

        data = _calculate(client, coupon_codes=["SAVE10"], customer={"id": "cust-1"})
        assert data["rejected_coupons"][0]["reason"] == (
            "You have already used this coupon the maximum number of times"
        )

        other = _calculate(client, coupon_codes=["SAVE10"], customer={"id": "cust-2"})
        assert other["applied_coupon_codes"] == ["SAVE10"]

    def test_customer_tier_condition(self, client: TestClient):
        _create_rule(
            client,
            "Gold members",
            "15",
            rule_type="customer_tier",
            conditions=[{"field": "customer_tier", "operator": "equals", "value": "gold"}],
        )

        assert Decimal(_calculate(client)["final_price"]) == Decimal("200")
        gold = _calculate(client, customer={"id": "c", "tags": ["gold"]})
        assert Decimal(gold["final_price"]) == Decimal("170")

    def test_rules_are_scoped_to_organization(self, client: TestClient):
        _create_rule(client, "Bulk", "10")
        response = client.post(
            "/v1/pricing/calculate",
            json={"item": ITEM, "as_of": AS_OF},
            headers={"X-Organization-Id": str(uuid.uuid4())},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["final_price"]) == Decimal("200")

    def test_calculation_does_not_count_usage(self, client: TestClient):
        rule_id = _create_rule(client, "Bulk", "10")
        _calculate(client)
        assert client.get(f"/v1/pricing_rules/{rule_id}").json()["usage_count"] == 0

    def test_invalid_quantity(self, client: TestClient):
        response = client.post(
            "/v1/pricing/calculate", json={"item": {**ITEM, "quantity": 0}, "as_of": AS_OF}
        )
        assert response.status_code == 422


class TestApplicableRules:
    def test_matching_rules_in_priority_order(self, client: TestClient):
        late = _create_rule(client, "Late", "5", priority=5)
        early = _create_rule(client, "Early", "10", priority=1, is_stackable=False)
        _create_rule(
            client,
            "Big orders",
            "10",
            conditions=[{"field": "quantity", "operator": "gte", "value": 50}],
        )

        response = client.post(
            "/v1/pricing/applicable_rules", json={"item": ITEM, "as_of": AS_OF}
        )
        assert response.status_code == 200
        assert [rule["id"] for rule in response.json()] == [early, late]

    def test_inactive_rules_are_not_listed(self, client: TestClient):
        _create_rule(client, "Off", "10", is_active=False)
        response = client.post(
            "/v1/pricing/applicable_rules", json={"item": ITEM, "as_of": AS_OF}
        )
        assert response.json() == []


class TestPreviewRulePrice:
    def test_preview_inactive_rule(self, client: TestClient):
        rule_id = _create_rule(client, "Draft", "25", is_active=False)

        assert Decimal(_calculate(client)["final_price"]) == Decimal("200")

        response = client.post(
            f"/v1/pricing/preview/{rule_id}", json={"item": ITEM, "as_of": AS_OF}
        )
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["final_price"]) == Decimal("150")
        assert data["applied_rule_ids"] == [rule_id]
        assert client.get(f"/v1/pricing_rules/{rule_id}").json()["is_active"] is False

    def test_preview_ignores_other_rules(self, client: TestClient):
        _create_rule(client, "Other", "50", priority=1)
        rule_id = _create_rule(client, "Target", "10", priority=2)

        response = client.post(
            f"/v1/pricing/preview/{rule_id}", json={"item": ITEM, "as_of": AS_OF}
        )
        assert Decimal(response.json()["final_price"]) == Decimal("180")

    def test_preview_conditions_still_apply(self, client: TestClient):
        rule_id = _create_rule(client, "Bulk", "10")
        response = client.post(
            f"/v1/pricing/preview/{rule_id}",
            json={"item": {**ITEM, "quantity": 1}, "as_of": AS_OF},
        )
        assert Decimal(response.json()["final_price"]) == Decimal("40")
        assert response.json()["applied_rule_ids"] == []

    def test_preview_not_found(self, client: TestClient):
        response = client.post(
            f"/v1/pricing/preview/{uuid.uuid4()}", json={"item": ITEM, "as_of": AS_OF}
        )
        assert response.status_code == 404
