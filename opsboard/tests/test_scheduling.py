"""
API tests for scheduled records (purchases, tasks, reminders, orders) and
site refill rounds.
"""
from opsboard.utils.helpers import today


async def _create_purchase(client, seed_data, **fields):
    payload = {
        "pickup_id": seed_data["pickup"].id,
        "supplier_id": seed_data["supplier"].id,
        "items": [{"product_id": seed_data["product"].id, "quantity": 2}],
    }
    payload.update(fields)
    r = await client.post("/api/purchase/", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


async def _create_task(client, title, **fields):
    r = await client.post("/api/task/", json={"title": title, "quantity": 1, **fields})
    assert r.status_code == 201, r.text
    return r.json()


# ===================== PURCHASES =====================


async def test_create_purchase(client, seed_data):
    data = await _create_purchase(client, seed_data, date="2030-06-10T09:00:00")
    assert data["pickup"]["pickup"] == "Morning run"
    assert data["supplier"]["name"] == "Fresh Farms"
    assert data["items"][0]["product"]["name"] == "Sourdough"
    assert data["day"] is None


async def test_create_purchase_invalid_pickup(client, seed_data):
    supplier_id = seed_data["supplier"].id
    r = await client.post("/api/purchase/", json={"pickup_id": 99999, "supplier_id": supplier_id})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid reference: pickup_id"


async def test_update_purchase_reconciles_items(client, seed_data):
    product_id = seed_data["product"].id
    purchase = await _create_purchase(
        client, seed_data,
        items=[{"product_id": product_id, "quantity": 1}, {"product_id": product_id, "quantity": 2}],
    )
    first, second = (item["id"] for item in purchase["items"])

    r = await client.put(f"/api/purchase/{purchase['id']}", json={
        "items": [
            {"id": first, "quantity": 10},
            {"id": second},
            {"product_id": product_id, "quantity": 3},
        ],
    })
    assert r.status_code == 200
    items = r.json()["items"]
    assert len(items) == 3
    assert [i["quantity"] for i in items] == [10, 2, 3]

    r = await client.put(f"/api/purchase/{purchase['id']}", json={"items": [{"id": second}]})
    assert [i["id"] for i in r.json()["items"]] == [second]


async def test_update_purchase_rejects_item_of_other_purchase(client, seed_data):
    other = await _create_purchase(client, seed_data)
    purchase = await _create_purchase(client, seed_data)

    r = await client.put(f"/api/purchase/{purchase['id']}", json={
        "items": [{"id": other["items"][0]["id"], "quantity": 5}],
    })
    assert r.status_code == 400

    r = await client.get(f"/api/purchase/{other['id']}")
    assert r.json()["items"][0]["quantity"] == 2


async def test_update_purchase_switches_to_weekly(client, seed_data):
    purchase = await _create_purchase(client, seed_data, date="2030-06-10T09:00:00")

    r = await client.put(f"/api/purchase/{purchase['id']}", json={"date": None, "day": "WED"})
    assert r.status_code == 200
    assert r.json()["date"] is None
    assert r.json()["day"] == "WED"
    assert len(r.json()["items"]) == 1


async def test_purchase_day_filter_keeps_dated_purchases(client, seed_data):
    await _create_purchase(client, seed_data, day="MON")
    await _create_purchase(client, seed_data, day="TUE")
    await _create_purchase(client, seed_data, date="2030-06-10T09:00:00")

    r = await client.get("/api/purchase/", params={"day": "MON"})
    records = r.json()["records"]
    assert len(records) == 2
    assert {p["day"] for p in records} == {"MON", None}

    r = await client.get("/api/purchase/", params={"day": "ALL"})
    assert r.json()["pagination"]["total_records"] == 3


async def test_purchase_date_filter_keeps_weekly_purchases(client, seed_data):
    await _create_purchase(client, seed_data, day="FRI")
    await _create_purchase(client, seed_data, date="2020-01-01T09:00:00")
    await _create_purchase(client, seed_data, date="2030-06-10T09:00:00")

    r = await client.get("/api/purchase/", params={"date": "2030-06-10T00:00:00"})
    records = r.json()["records"]
    assert len(records) == 2
    assert {p["day"] for p in records} == {"FRI", None}


async def test_purchase_invalid_day_rejected(client):
    r = await client.get("/api/purchase/", params={"day": "FUNDAY"})
    assert r.status_code == 400


async def test_purchase_search_by_supplier_name(client, seed_data):
    await _create_purchase(client, seed_data, day="MON")

    r = await client.get("/api/purchase/", params={"search": "fresh"})
    assert r.json()["pagination"]["total_records"] == 1

    r = await client.get("/api/purchase/", params={"search": "nothing"})
    assert r.json()["records"] == []


async def test_purchases_grouped(client, seed_data):
    await _create_purchase(client, seed_data, date="2030-06-11T09:00:00")
    await _create_purchase(client, seed_data, day="MON")
    await _create_purchase(client, seed_data, date="2030-06-10T15:00:00")

    r = await client.get("/api/purchase/grouped")
    assert r.status_code == 200
    groups = r.json()
    assert [g["date_key"] for g in groups] == [today().isoformat(), "2030-06-10", "2030-06-11"]
    assert groups[0]["heading"].endswith(" - Today")
    assert groups[1]["heading"] == "June 10, 2030"
    assert groups[0]["records"][0]["day"] == "MON"


async def test_purchase_offset_date_stored_as_utc(client, seed_data):
    data = await _create_purchase(client, seed_data, date="2030-06-10T23:30:00-05:00")
    assert data["date"] == "2030-06-11T04:30:00"

    r = await client.get("/api/purchase/", params={"date": "2030-06-11T00:00:00"})
    assert [p["id"] for p in r.json()["records"]] == [data["id"]]

    r = await client.get("/api/purchase/", params={"date": "2030-06-12T00:00:00"})
    assert r.json()["records"] == []

    r = await client.get("/api/purchase/grouped")
    assert [g["date_key"] for g in r.json()] == ["2030-06-11"]


async def test_update_purchase_offset_date(client, seed_data):
    purchase = await _create_purchase(client, seed_data, day="MON")
    r = await client.put(f"/api/purchase/{purchase['id']}", json={"date": "2030-06-11T01:00:00+02:00", "day": None})
    assert r.status_code == 200
    assert r.json()["date"] == "2030-06-10T23:00:00"


async def test_purchase_pagination(client, seed_data):
    for day in ("MON", "TUE", "WED"):
        await _create_purchase(client, seed_data, day=day)

    r = await client.get("/api/purchase/", params={"page": 2, "limit": 2})
    meta = r.json()["pagination"]
    assert len(r.json()["records"]) == 1
    assert meta["total_pages"] == 2
    assert meta["prev_page"] == 1
    assert meta["next_page"] is None


async def test_delete_purchase_requires_admin(user_client, seed_data):
    purchase = await _create_purchase(user_client, seed_data, day="MON")
    r = await user_client.delete(f"/api/purchase/{purchase['id']}")
    assert r.status_code == 403


async def test_delete_purchase(client, seed_data):
    purchase = await _create_purchase(client, seed_data, day="MON")
    r = await client.delete(f"/api/purchase/{purchase['id']}")
    assert r.status_code == 200

    r = await client.get(f"/api/purchase/{purchase['id']}")
    assert r.status_code == 404


# ===================== TASKS =====================


async def test_task_cursor_pages(client):
    for i in range(5):
        await _create_task(client, f"Task {i}", date=f"2030-06-1{i}T08:00:00")

    seen, cursor = [], None
    while True:
        params = {"limit": 2}
        if cursor:
            params["cursor"] = cursor
        r = await client.get("/api/task/", params=params)
        assert r.status_code == 200
        body = r.json()
        seen.extend(t["title"] for t in body["records"])
        if not body["page_info"]["has_more"]:
            assert body["page_info"]["next_cursor"] is None
            break
        cursor = body["page_info"]["next_cursor"]

    assert seen == [f"Task {i}" for i in range(5)]


async def test_task_cursor_must_match_sort(client):
    for i in range(3):
        await _create_task(client, f"Task {i}", date=f"2030-06-1{i}T08:00:00")

    r = await client.get("/api/task/", params={"limit": 1})
    cursor = r.json()["page_info"]["next_cursor"]

    r = await client.get("/api/task/", params={"limit": 1, "cursor": cursor, "sortBy": "title"})
    assert r.status_code == 400


async def test_task_links_and_filters(client, seed_data):
    entity_id = seed_data["entity"].id
    product_id = seed_data["product"].id

    await _create_task(client, "Restock shelves", entity_id=entity_id, product_id=product_id, day="MON")
    await _create_task(client, "Unrelated", day="MON")

    r = await client.get("/api/task/", params={"entityId": entity_id})
    records = r.json()["records"]
    assert [t["title"] for t in records] == ["Restock shelves"]
    assert records[0]["entity"]["name"] == "Kitchen"
    assert records[0]["product"]["plu"] == 1001


async def test_create_task_invalid_link(client):
    r = await client.post("/api/task/", json={"title": "Broken", "quantity": 1, "entity_id": 99999})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid reference: entity_id"


async def test_tasks_grouped(client):
    await _create_task(client, "Weekly", day="SUN")
    await _create_task(client, "Later", date="2030-01-02T08:00:00")

    r = await client.get("/api/task/grouped")
    groups = r.json()
    assert [g["date_key"] for g in groups] == [today().isoformat(), "2030-01-02"]
    assert groups[1]["records"][0]["title"] == "Later"


async def test_task_offset_date_groups_by_utc_day(client):
    task = await _create_task(client, "Late call", date="2030-01-01T22:00:00-03:00")
    assert task["date"] == "2030-01-02T01:00:00"

    r = await client.get("/api/task/grouped")
    assert [g["date_key"] for g in r.json()] == ["2030-01-02"]


async def test_update_task_requires_admin(user_client):
    task = await _create_task(user_client, "Mine", day="MON")
    r = await user_client.put(f"/api/task/{task['id']}", json={"title": "Changed"})
    assert r.status_code == 403


async def test_update_task_clears_link(client, seed_data):
    entity_id = seed_data["entity"].id
    task = await _create_task(client, "Linked", entity_id=entity_id, day="MON")

    r = await client.put(f"/api/task/{task['id']}", json={"entity_id": None, "title": None})
    assert r.status_code == 200
    assert r.json()["entity_id"] is None
    assert r.json()["title"] == "Linked"


# ===================== REMINDERS =====================


async def test_reminder_entities_and_filter(client, seed_data):
    entity_id = seed_data["entity"].id

    r = await client.post("/api/reminder/", json={
        "title": "Fire drill", "date": "2030-03-01T10:00:00", "entity_ids": [entity_id],
    })
    assert r.status_code == 201
    assert [e["name"] for e in r.json()["entities"]] == ["Kitchen"]

    await client.post("/api/reminder/", json={"title": "Other", "date": "2030-03-02T10:00:00"})

    r = await client.get("/api/reminder/", params={"entityId": entity_id})
    assert [rem["title"] for rem in r.json()["records"]] == ["Fire drill"]

    r = await client.get("/api/reminder/", params={"date": "2030-03-02T00:00:00"})
    assert [rem["title"] for rem in r.json()["records"]] == ["Other"]


async def test_reminder_offset_date_matches_utc_day(client):
    r = await client.post("/api/reminder/", json={"title": "Inspection", "date": "2030-03-01T20:00:00-08:00"})
    assert r.status_code == 201
    assert r.json()["date"] == "2030-03-02T04:00:00"

    r = await client.get("/api/reminder/", params={"date": "2030-03-02T00:00:00"})
    assert [rem["title"] for rem in r.json()["records"]] == ["Inspection"]


async def test_reminder_unknown_entity(client):
    r = await client.post("/api/reminder/", json={"title": "Bad", "date": "2030-03-01T10:00:00", "entity_ids": [99999]})
    assert r.status_code == 400
    assert "99999" in r.json()["detail"]


async def test_update_reminder_replaces_entities(client, seed_data):
    entity_id = seed_data["entity"].id
    r = await client.post("/api/reminder/", json={
        "title": "Audit", "date": "2030-03-01T10:00:00", "entity_ids": [entity_id],
    })
    reminder_id = r.json()["id"]

    r = await client.put(f"/api/reminder/{reminder_id}", json={"entity_ids": []})
    assert r.status_code == 200
    assert r.json()["entities"] == []
    assert r.json()["title"] == "Audit"


# ===================== ORDERS =====================


async def _create_order(client, seed_data, **fields):
    payload = {
        "client_id": seed_data["client"].id,
        "order_type_id": seed_data["order_type"].id,
        "pickup_id": seed_data["pickup"].id,
        "date": "2030-05-01T12:00:00",
        "items": [{"product_id": seed_data["product"].id, "quantity": 4}],
    }
    payload.update(fields)
    r = await client.post("/api/order/", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


async def test_create_order(client, seed_data):
    service_id = seed_data["service"].id
    order = await _create_order(client, seed_data, service_ids=[service_id], comment="Birthday")
    assert order["client"]["first_name"] == "Ada"
    assert order["order_type"]["order_type"] == "Catering"
    assert [s["service_type"] for s in order["services"]] == ["Delivery"]
    assert order["items"][0]["quantity"] == 4
    assert order["bill"] is False


async def test_create_order_invalid_client(client, seed_data):
    order_type_id = seed_data["order_type"].id
    pickup_id = seed_data["pickup"].id
    r = await client.post("/api/order/", json={
        "client_id": 99999, "order_type_id": order_type_id, "pickup_id": pickup_id, "date": "2030-05-01T12:00:00",
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid reference: client_id"


async def test_order_new_item_requires_product(client, seed_data):
    r = await client.post("/api/order/", json={
        "client_id": seed_data["client"].id,
        "order_type_id": seed_data["order_type"].id,
        "pickup_id": seed_data["pickup"].id,
        "date": "2030-05-01T12:00:00",
        "items": [{"quantity": 1}],
    })
    assert r.status_code == 400


async def test_order_filters(client, seed_data):
    service_id = seed_data["service"].id
    first = await _create_order(client, seed_data, service_ids=[service_id], date="2030-05-02T12:00:00")
    await _create_order(client, seed_data, date="2020-05-01T12:00:00")

    r = await client.get("/api/order/", params={"serviceId": service_id})
    assert [o["id"] for o in r.json()["records"]] == [first["id"]]

    r = await client.get("/api/order/", params={"date": "2030-01-01T00:00:00"})
    assert [o["id"] for o in r.json()["records"]] == [first["id"]]

    r = await client.get("/api/order/", params={"search": str(first["id"])})
    assert first["id"] in [o["id"] for o in r.json()["records"]]


async def test_orders_sorted_by_date(client, seed_data):
    late = await _create_order(client, seed_data, date="2030-05-03T12:00:00")
    early = await _create_order(client, seed_data, date="2030-05-01T12:00:00")

    r = await client.get("/api/order/")
    assert [o["id"] for o in r.json()["records"]] == [early["id"], late["id"]]


async def test_update_order_items_and_services(client, seed_data):
    product_id = seed_data["product"].id
    service_id = seed_data["service"].id
    order = await _create_order(client, seed_data)
    item_id = order["items"][0]["id"]

    r = await client.put(f"/api/order/{order['id']}", json={
        "bill": True,
        "service_ids": [service_id],
        "items": [{"id": item_id, "quantity": 6}, {"product_id": product_id, "quantity": 1}],
    })
    assert r.status_code == 200
    data = r.json()
    assert data["bill"] is True
    assert len(data["services"]) == 1
    assert [i["quantity"] for i in data["items"]] == [6, 1]


async def test_delete_order_requires_admin(user_client, seed_data):
    order = await _create_order(user_client, seed_data)
    r = await user_client.delete(f"/api/order/{order['id']}")
    assert r.status_code == 403


# ===================== SITES / REFILLS =====================


async def test_sites_ordered_by_weekday(client):
    for name, day in (("Zoo", "FRI"), ("Alpha", "MON"), ("Beta", "MON")):
        r = await client.post("/api/site/", json={"site_name": name, "day": day, "supervisor": "Sam"})
        assert r.status_code == 201

    r = await client.get("/api/site/")
    assert [s["site_name"] for s in r.json()["records"]] == ["Alpha", "Beta", "Zoo"]

    r = await client.get("/api/site/", params={"day": "FRI"})
    assert [s["site_name"] for s in r.json()["records"]] == ["Zoo"]


async def test_site_supervisor_filter(client):
    await client.post("/api/site/", json={"site_name": "North", "day": "TUE", "supervisor": "Jordan"})
    await client.post("/api/site/", json={"site_name": "South", "day": "TUE", "supervisor": "Riley"})

    r = await client.get("/api/site/", params={"supervisor": "jord"})
    assert [s["site_name"] for s in r.json()["records"]] == ["North"]


async def test_refill_batch_and_update(client, seed_data):
    product_id = seed_data["product"].id
    r = await client.post("/api/site/", json={"site_name": "Depot", "day": "WED", "supervisor": "Sam"})
    site_id = r.json()["id"]

    r = await client.post("/api/refill/", json={
        "site_id": site_id,
        "refills": [{"product_id": product_id, "quantity": 3}, {"product_id": product_id, "quantity": 7}],
    })
    assert r.status_code == 201
    refills = r.json()
    assert [f["quantity"] for f in refills] == [3, 7]

    r = await client.put(f"/api/refill/{refills[0]['id']}", json={"quantity": 5})
    assert r.status_code == 200
    assert r.json()["quantity"] == 5

    r = await client.get(f"/api/site/{site_id}")
    assert [f["quantity"] for f in r.json()["refills"]] == [5, 7]
    assert r.json()["refills"][0]["product"]["name"] == "Sourdough"


async def test_refill_unknown_site(client, seed_data):
    product_id = seed_data["product"].id
    r = await client.post("/api/refill/", json={"site_id": 99999, "refills": [{"product_id": product_id, "quantity": 1}]})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid reference: site_id"


async def test_refill_requires_lines(client):
    r = await client.post("/api/site/", json={"site_name": "Depot", "day": "WED", "supervisor": "Sam"})
    r = await client.post("/api/refill/", json={"site_id": r.json()["id"], "refills": []})
    assert r.status_code == 400


async def test_delete_site_removes_refills(client, seed_data):
    product_id = seed_data["product"].id
    r = await client.post("/api/site/", json={"site_name": "Depot", "day": "WED", "supervisor": "Sam"})
    site_id = r.json()["id"]
    r = await client.post("/api/refill/", json={"site_id": site_id, "refills": [{"product_id": product_id, "quantity": 1}]})
    refill_id = r.json()[0]["id"]

    r = await client.delete(f"/api/site/{site_id}")
    assert r.status_code == 200

    r = await client.put(f"/api/refill/{refill_id}", json={"quantity": 2})
    assert r.status_code == 404
