def _setup_venue(client):
    assert client.post("/v1/venues", json={"id": "v1", "name": "Main Bar"}).status_code == 200
    client.post("/v1/venues/v1/suppliers", json={"id": "bevco", "name": "BevCo", "lead_time_days": 2})
    client.post("/v1/venues/v1/suppliers", json={"id": "liquorland", "name": "Liquorland", "lead_time_days": 3})
    client.post(
        "/v1/venues/v1/items",
        json={"id": "vodka", "name": "Vodka", "department_id": "bar", "unit_cost": 25, "par": 10, "pack_size": 6, "supplier_id": "bevco"},
    )
    client.post(
        "/v1/venues/v1/items",
        json={"id": "salt", "name": "Salt", "department_id": "kitchen", "unit_cost": 2, "pack_size": 4},
    )
    client.post("/v1/venues/v1/suppliers/liquorland/prices", json={"item_id": "vodka", "price": 22})


def test_health(client):
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_duplicate_venue_conflict(client):
    client.post("/v1/venues", json={"id": "v1", "name": "Main Bar"})
    r = client.post("/v1/venues", json={"id": "v1", "name": "Again"})
    assert r.status_code == 409


def test_item_with_foreign_supplier_is_rejected(client):
    _setup_venue(client)
    r = client.post("/v1/venues/v1/items", json={"id": "gin", "name": "Gin", "supplier_id": "nope"})
    assert r.status_code == 400


def test_variance_endpoint(client):
    _setup_venue(client)
    r = client.post("/v1/venues/v1/stock/counts", json=[{"item_id": "vodka", "qty": 8}, {"item_id": "salt", "qty": 3}])
    assert r.json() == {"counted": 2}
    client.post("/v1/venues/v1/stock/movements", json={"item_id": "vodka", "movement_type": "SALE", "quantity": 2})

    body = client.get("/v1/venues/v1/variance", params={"department_id": "bar"}).json()

    assert body["scope"] == {"venue_id": "v1", "department_id": "bar"}
    assert [row["item_id"] for row in body["shortages"]] == ["vodka"]
    assert body["shortages"][0]["delta_vs_par"] == -4
    assert body["total_shortage_value"] == 100
    assert body["excesses"] == []


def test_count_for_unknown_item_is_rejected(client):
    _setup_venue(client)
    r = client.post("/v1/venues/v1/stock/counts", json=[{"item_id": "ghost", "qty": 1}])
    assert r.status_code == 400


def test_suggestions_endpoint(client):
    _setup_venue(client)

    body = client.get("/v1/venues/v1/suggestions").json()
    by_key = {b["supplier_key"]: b for b in body}

    assert set(by_key) == {"liquorland", "__UNASSIGNED__"}
    vodka = by_key["liquorland"]["lines"][0]
    assert vodka["qty"] == 12
    assert vodka["unit_cost"] == 22
    salt = by_key["__UNASSIGNED__"]["lines"][0]
    assert salt["reason"] == "both"
    assert by_key["__UNASSIGNED__"]["supplier_id"] is None


def test_materialize_guard_and_delete_flow(client):
    _setup_venue(client)

    first = client.post("/v1/venues/v1/orders/materialize", json={"created_by": "alex"}).json()
    assert set(first["created"]) == {"liquorland", "__UNASSIGNED__"}

    second = client.post("/v1/venues/v1/orders/materialize", json={}).json()
    assert second["created"] == {}
    assert sorted(second["guarded"]) == ["__UNASSIGNED__", "liquorland"]

    order_id = first["created"]["liquorland"]
    order = client.get(f"/v1/venues/v1/orders/{order_id}").json()
    assert order["status"] == "DRAFT"
    assert order["lines"][0]["qty"] == 12
    assert order["total"] == 264

    r = client.delete(f"/v1/venues/v1/orders/{order_id}")
    assert r.json() == {"id": order_id, "deleted": True, "lock_released": True}

    third = client.post("/v1/venues/v1/orders/materialize", json={}).json()
    assert list(third["created"]) == ["liquorland"]
    assert third["guarded"] == ["__UNASSIGNED__"]


def test_materialize_explicit_buckets(client):
    _setup_venue(client)

    payload = {
        "buckets": {
            "bevco": [{"product_id": "vodka", "product_name": "Vodka", "qty": 2.6, "unit_cost": 25}],
            "unassigned": [{"product_id": "salt", "qty": 1, "needs_supplier": True}],
            "liquorland": [],
        }
    }
    body = client.post("/v1/venues/v1/orders/materialize", json=payload).json()

    assert set(body["created"]) == {"bevco", "__UNASSIGNED__"}
    assert body["skipped_empty"] == ["liquorland"]

    order = client.get(f"/v1/venues/v1/orders/{body['created']['bevco']}").json()
    assert order["lines"][0]["qty"] == 3
    assert order["needs_supplier_review"] is False

    unassigned = client.get(f"/v1/venues/v1/orders/{body['created']['__UNASSIGNED__']}").json()
    assert unassigned["supplier_id"] is None
    assert unassigned["needs_supplier_review"] is True


def test_order_transitions(client):
    _setup_venue(client)
    created = client.post("/v1/venues/v1/orders/materialize", json={}).json()["created"]
    order_id = created["liquorland"]

    assert client.post(f"/v1/venues/v1/orders/{order_id}/receive").status_code == 409

    r = client.post(f"/v1/venues/v1/orders/{order_id}/submit")
    assert r.status_code == 200
    assert r.json()["status"] == "SUBMITTED"

    assert client.delete(f"/v1/venues/v1/orders/{order_id}").status_code == 409
    assert client.post(f"/v1/venues/v1/orders/{order_id}/receive").json()["status"] == "RECEIVED"

    drafts = client.get("/v1/venues/v1/orders", params={"status": "DRAFT"}).json()
    assert [o["supplier_key"] for o in drafts] == ["__UNASSIGNED__"]

    # le lock est parti avec le submit -> nouveau draft possible
    again = client.post("/v1/venues/v1/orders/materialize", json={}).json()
    assert list(again["created"]) == ["liquorland"]


def test_unknown_order_and_action(client):
    _setup_venue(client)
    assert client.get("/v1/venues/v1/orders/999").status_code == 404
    assert client.delete("/v1/venues/v1/orders/999").status_code == 404
    assert client.post("/v1/venues/v1/orders/999/submit").status_code == 404
    assert client.post("/v1/venues/v1/orders/999/explode").status_code == 404


def test_units_normalize(client):
    r = client.post("/v1/units/normalize", json={"quantity": 70, "unit": "cl"})
    assert r.json() == {"quantity": 700, "base_unit": "volume"}

    r = client.post("/v1/units/normalize", json={"quantity": -3, "unit": "kg"})
    assert r.json() == {"quantity": 0, "base_unit": "mass"}
