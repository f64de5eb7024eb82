from decimal import Decimal


def issue(client, product_id, **extra):
    payload = {
        "customer_id": 1,
        "lines": [{"product_id": product_id, "uom": "BOX", "quantity": 1}],
    }
    payload.update(extra)
    return client.post("/api/credit-notes", json=payload)


def test_issue_and_fetch_credit_note(client, make_product):
    p = make_product(stock=80, units_per_box=20)
    r = issue(client, p.id, number="CN-1", reason="Damaged")
    assert r.status_code == 201
    body = r.json()
    assert body["movements"] == 1
    cn = body["credit_note"]
    assert cn["number"] == "CN-1"
    assert Decimal(cn["total_amount"]) == Decimal("230.00")
    assert cn["lines"][0]["total_qty"] == 20

    r = client.get(f"/api/credit-notes/{cn['id']}")
    assert r.status_code == 200
    assert r.json()["reason"] == "Damaged"

    r = client.get("/api/credit-notes", params={"status": "ISSUED"})
    assert [c["number"] for c in r.json()] == ["CN-1"]

    assert client.get("/api/credit-notes/404").status_code == 404


def test_issue_validation_errors(client, make_product):
    p = make_product(stock=10)
    r = issue(client, p.id, lines=[{"product_id": p.id, "uom": "KG", "quantity": 1}])
    assert r.status_code == 400
    assert "KG" in r.json()["detail"]

    assert issue(client, 9999).status_code == 404
    assert issue(client, p.id, lines=[]).status_code == 422


def test_void_refund_restore_over_http(client, make_product):
    p = make_product(stock=80, units_per_box=20)
    cn_id = issue(client, p.id, number="CN-1").json()["credit_note"]["id"]

    r = client.post(f"/api/credit-notes/{cn_id}/void", json={"note": "customer kept goods"})
    assert r.status_code == 200
    assert r.json()["status"] == "VOID"
    assert r.json()["ok"] is True

    r = client.post(f"/api/credit-notes/{cn_id}/void")
    assert r.status_code == 409

    r = client.post(f"/api/credit-notes/{cn_id}/refund")
    assert r.status_code == 409

    r = client.post(f"/api/credit-notes/{cn_id}/restore")
    assert r.status_code == 200
    assert r.json()["previous_status"] == "VOID"

    assert client.post("/api/credit-notes/404/void").status_code == 404

    stock = client.get(f"/api/inventory/products/{p.id}/stock").json()
    assert stock["pieces"] == 100
    assert (stock["boxes"], stock["units"]) == (5, 0)
    assert stock["consistent"] is True


def test_idempotency_header(client, make_product):
    p = make_product(stock=80, units_per_box=20)
    cn_id = issue(client, p.id).json()["credit_note"]["id"]
    headers = {"Idempotency-Key": "void-1"}

    r1 = client.post(f"/api/credit-notes/{cn_id}/void", headers=headers)
    r2 = client.post(f"/api/credit-notes/{cn_id}/void", headers=headers)
    assert r1.status_code == r2.status_code == 200
    assert r1.json() == r2.json()

    moves = client.get("/api/inventory/movements", params={"product_id": p.id}).json()
    assert [m["movement_type"] for m in moves] == ["OUT", "IN", "ADJUSTMENT"]


def test_audit_trail_endpoint(client, make_product):
    p = make_product(stock=80, units_per_box=20)
    headers = {"X-Actor-Id": "clerk-7"}
    cn_id = issue(client, p.id).json()["credit_note"]["id"]
    client.post(f"/api/credit-notes/{cn_id}/void", headers=headers)
    client.post(f"/api/credit-notes/{cn_id}/void", headers=headers)

    trail = client.get(f"/api/audit/credit_notes/{cn_id}").json()
    assert [e["action"] for e in trail] == [
        "credit_note.void.rejected",
        "credit_note.void",
        "credit_note.issue",
    ]
    assert trail[1]["actor_id"] == "clerk-7"
    assert trail[1]["meta"]["from"] == "ISSUED"


def test_movements_and_low_stock(client, make_product):
    p = make_product(sku="FLOUR", stock_unit="WEIGHT", grams=4000, reorder_level=3)

    r = client.post(
        "/api/inventory/movements",
        json={
            "product_id": p.id,
            "movement_type": "OUT",
            "quantity_grams": 1500,
            "reference": "SALE-1",
        },
    )
    assert r.status_code == 201
    assert r.json()["quantity_grams"] == 1500

    low = client.get("/api/inventory/low-stock").json()
    assert [(x["sku"], x["kg"], x["g"]) for x in low] == [("FLOUR", 2, 500)]

    r = client.post(
        "/api/inventory/movements",
        json={"product_id": p.id, "movement_type": "IN", "quantity_grams": 0, "reference": "X"},
    )
    assert r.status_code == 400

    r = client.post(
        "/api/inventory/movements",
        json={
            "product_id": p.id,
            "movement_type": "IN",
            "quantity_grams": 100,
            "reference": "CN-1:restore",
        },
    )
    assert r.status_code == 400
    assert "reserved" in r.json()["detail"]

    r = client.get("/api/inventory/movements", params={"reference": "SALE-1"})
    assert len(r.json()) == 1

    assert client.get("/api/inventory/products/404/stock").status_code == 404


def test_invoice_endpoints(client, make_product, make_invoice):
    p = make_product(stock=0, units_per_box=20)
    inv = make_invoice(total="1000.00")
    issue(client, p.id, invoice_id=inv.id)

    r = client.post(f"/api/invoices/{inv.id}/payments", json={"amount": "500.00"})
    assert r.status_code == 201
    payment_id = r.json()["id"]

    body = client.get(f"/api/invoices/{inv.id}").json()
    assert Decimal(body["balance_remaining"]) == Decimal("270.00")
    assert body["status"] == "PARTIALLY_PAID"
    assert len(body["payments"]) == 1

    r = client.delete(f"/api/invoices/{inv.id}/payments/{payment_id}")
    assert r.status_code == 200
    assert Decimal(r.json()["balance_remaining"]) == Decimal("770.00")

    r = client.post(f"/api/invoices/{inv.id}/reconcile")
    assert r.json()["consistent"] is True

    assert client.post(f"/api/invoices/{inv.id}/payments", json={"amount": 0}).status_code == 400
    assert client.get("/api/invoices/404").status_code == 404
