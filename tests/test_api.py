from app.core.security import create_access_token


def _booking_payload(**overrides):
    payload = {
        "customerName": "Dewi Lestari",
        "customerWhatsapp": "081234567890",
        "category": "Prewedding Gold",
        "bookingDate": "2026-11-01T10:00",
        "totalPrice": 1_000_000,
        "payments": [{"date": "2026-10-01", "amount": 400_000}],
    }
    payload.update(overrides)
    return payload


def _create(client, headers, **overrides):
    res = client.post("/api/v1/bookings", json=_booking_payload(**overrides), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/v1/health").status_code == 200


def test_requires_bearer_token(client):
    assert client.get("/api/v1/bookings").status_code == 401
    res = client.get("/api/v1/bookings", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_unknown_role_is_rejected(client):
    token = create_access_token("guest", role="customer")
    assert client.get("/api/v1/bookings", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_create_and_fetch_booking(client, staff_headers):
    created = _create(client, staff_headers)
    assert created["status"] == "Active"
    assert created["customer"]["category"] == "Prewedding Gold"
    assert created["finance"]["payments"][0]["amount"] == 400_000

    res = client.get(f"/api/v1/bookings/{created['id']}/finance", headers=staff_headers)
    body = res.json()
    assert body["finance"] == {"total": 1_000_000, "paid": 400_000, "balance": 600_000, "is_paid_off": False}
    assert body["breakdown"]["is_reconstructed"] is True

    listing = client.get("/api/v1/bookings", headers=staff_headers).json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == created["id"]


def test_invalid_payload_is_400(client, staff_headers):
    res = client.post("/api/v1/bookings", json=_booking_payload(customerWhatsapp="abc"), headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "validation_error"

    res = client.post("/api/v1/bookings", json=_booking_payload(category="Underwater"), headers=staff_headers)
    assert res.status_code == 400
    assert "Underwater" in res.json()["detail"]


def test_missing_booking_is_404(client, staff_headers):
    res = client.get("/api/v1/bookings/does-not-exist", headers=staff_headers)
    assert res.status_code == 404
    assert res.json()["code"] == "not_found"


def test_payment_then_paid_off(client, staff_headers):
    created = _create(client, staff_headers)
    res = client.post(f"/api/v1/bookings/{created['id']}/payments",
                      json={"date": "2026-10-20", "amount": 600_000, "note": "Pelunasan"}, headers=staff_headers)
    assert res.status_code == 200
    assert res.json()["finance"]["is_paid_off"] is True


def test_reschedule_conflict_is_409(client, staff_headers):
    _create(client, staff_headers, bookingDate="2026-11-01T10:00")
    other = _create(client, staff_headers, customerName="Rina", bookingDate="2026-11-01T11:00")

    res = client.post(f"/api/v1/bookings/{other['id']}/reschedule",
                      json={"newDate": "2026-11-01T10:00"}, headers=staff_headers)
    assert res.status_code == 409
    assert res.json()["code"] == "slot_conflict"

    res = client.post(f"/api/v1/bookings/{other['id']}/reschedule",
                      json={"newDate": "2026-11-02T10:00", "reason": "client sick"}, headers=staff_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "Rescheduled"
    assert body["rescheduleHistory"][0]["oldDate"] == "2026-11-01T11:00"

    check = client.get("/api/v1/bookings/slots/check", params={"date": "2026-11-01T11:00"}, headers=staff_headers)
    assert check.json()["available"] is True


def test_completed_booking_cannot_be_deleted_or_edited(client, staff_headers):
    created = _create(client, staff_headers)
    res = client.post(f"/api/v1/bookings/{created['id']}/status", json={"status": "Completed"}, headers=staff_headers)
    assert res.json()["status"] == "Completed"

    res = client.delete(f"/api/v1/bookings/{created['id']}", headers=staff_headers)
    assert res.status_code == 403
    assert res.json()["code"] == "permission_denied"

    res = client.patch(f"/api/v1/bookings/{created['id']}", json={"notes": "x"}, headers=staff_headers)
    assert res.status_code == 400


def test_delete_booking(client, staff_headers):
    created = _create(client, staff_headers)
    assert client.delete(f"/api/v1/bookings/{created['id']}", headers=staff_headers).status_code == 200
    assert client.get(f"/api/v1/bookings/{created['id']}", headers=staff_headers).status_code == 404


def test_coupon_endpoints(client, admin_headers, staff_headers):
    res = client.post("/api/v1/coupons", json={
        "code": "promo20", "discountType": "percentage", "discountValue": 20, "maxDiscount": 100_000,
    }, headers=admin_headers)
    assert res.status_code == 201
    assert res.json()["code"] == "PROMO20"

    # staff cannot manage coupons
    res = client.post("/api/v1/coupons", json={"code": "X", "discountType": "fixed", "discountValue": 1}, headers=staff_headers)
    assert res.status_code == 403

    res = client.post("/api/v1/coupons/validate", json={"code": "Promo20", "orderTotal": 1_000_000})
    assert res.json() == {
        "valid": True,
        "discountAmount": 100_000,
        "finalTotal": 900_000,
        "coupon": {"code": "PROMO20", "discountType": "percentage", "discountValue": 20.0, "description": None},
    }
    res = client.post("/api/v1/coupons/validate", json={"code": "nope", "orderTotal": 1_000_000})
    assert res.json() == {"valid": False, "error": "Invalid coupon code"}

    suggestions = client.get("/api/v1/coupons/suggestions", params={"orderTotal": 200_000}).json()["items"]
    assert suggestions[0]["code"] == "PROMO20"
    assert suggestions[0]["estimatedDiscount"] == 40_000

    _create(client, staff_headers, couponCode="PROMO20", servicePrice=1_000_000)
    usage = client.get("/api/v1/coupons/usage", headers=staff_headers).json()["items"]
    assert len(usage) == 1
    assert usage[0]["discountAmount"] == 100_000


def test_coupon_patch_with_nulls_keeps_values(client, admin_headers):
    created = client.post("/api/v1/coupons", json={
        "code": "hemat", "discountType": "fixed", "discountValue": 50_000,
    }, headers=admin_headers).json()

    res = client.patch(f"/api/v1/coupons/{created['id']}",
                       json={"discountValue": None, "discountType": None, "isActive": None},
                       headers=admin_headers)
    assert res.status_code == 200, res.text
    assert res.json()["discountValue"] == 50_000
    assert res.json()["discountType"] == "fixed"
    assert res.json()["isActive"] is True


def test_catalog_and_expenses(client, admin_headers, staff_headers):
    res = client.post("/api/v1/addons", json={"name": "Album", "price": 450_000, "applicableCategories": ["Wedding"]},
                      headers=admin_headers)
    assert res.status_code == 201
    assert client.get("/api/v1/addons", params={"category": "Wedding"}).json()["items"][0]["name"] == "Album"
    assert client.get("/api/v1/addons", params={"category": "Family"}).json()["items"] == []

    res = client.post("/api/v1/photographers", json={"name": "Budi"}, headers=admin_headers)
    assert res.status_code == 201
    assert len(client.get("/api/v1/photographers", headers=staff_headers).json()["items"]) == 1

    res = client.post("/api/v1/expenses", json={"date": "2026-03-07", "category": "equipment", "amount": 150_000},
                      headers=staff_headers)
    assert res.status_code == 201
    expense_id = res.json()["id"]
    assert res.json()["createdBy"] == "desk@studio.test"

    res = client.patch(f"/api/v1/expenses/{expense_id}", json={"amount": 175_000}, headers=staff_headers)
    assert res.json()["amount"] == 175_000
    assert client.patch("/api/v1/expenses/missing", json={"amount": 1}, headers=staff_headers).status_code == 404
    res = client.post("/api/v1/expenses", json={"date": "2026-03-07", "category": "snacks", "amount": 1},
                      headers=staff_headers)
    assert res.status_code == 400

    summary = client.get("/api/v1/finance/summary", params={"start": "2026-03-01", "end": "2026-03-31"},
                         headers=admin_headers).json()
    assert summary["expenses"] == 175_000
    assert summary["profit"] == -175_000
    assert client.get("/api/v1/finance/summary", params={"start": "2026-03-01", "end": "2026-03-31"},
                      headers=staff_headers).status_code == 403

    res = client.get("/api/v1/finance/summary", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["expenses"] == 175_000
    assert res.json()["start"] is None


def test_lead_lifecycle_endpoints(client, staff_headers):
    res = client.post("/api/v1/leads", json={
        "name": "Putri Ayu", "whatsapp": "081298765432", "source": "Meta Ads", "email": "putri.ayu@gmail.com",
    }, headers=staff_headers)
    assert res.status_code == 201, res.text
    lead = res.json()
    assert lead["status"] == "New"

    res = client.post("/api/v1/leads", json={"name": "Dup", "whatsapp": "081298765432", "source": "Other"},
                      headers=staff_headers)
    assert res.status_code == 409
    assert res.json()["code"] == "conflict"
    res = client.post("/api/v1/leads", json={"name": "X", "whatsapp": "081200000000", "source": "Billboard"},
                      headers=staff_headers)
    assert res.status_code == 400

    res = client.post(f"/api/v1/leads/{lead['id']}/interactions",
                      json={"interactionType": "WhatsApp", "content": "sent pricelist"}, headers=staff_headers)
    assert res.status_code == 201
    assert res.json()["createdBy"] == "desk@studio.test"
    log = client.get(f"/api/v1/leads/{lead['id']}/interactions", headers=staff_headers).json()["items"]
    assert len(log) == 1

    # only Won leads convert
    res = client.post(f"/api/v1/leads/{lead['id']}/convert", json={"category": "Family"}, headers=staff_headers)
    assert res.status_code == 400
    res = client.post(f"/api/v1/leads/{lead['id']}/status", json={"status": "Won"}, headers=staff_headers)
    assert res.json()["status"] == "Won"

    res = client.post(f"/api/v1/leads/{lead['id']}/convert",
                      json={"category": "Family", "bookingDate": "2026-12-01T09:00", "totalPrice": 500_000},
                      headers=staff_headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["lead"]["status"] == "Converted"
    assert body["lead"]["bookingId"] == body["booking"]["id"]
    assert body["booking"]["booking"]["date"] == "2026-12-01T09:00"
    assert client.get(f"/api/v1/bookings/{body['booking']['id']}", headers=staff_headers).status_code == 200

    stats = client.get("/api/v1/leads/stats", headers=staff_headers).json()
    assert stats["total"] == 1
    assert stats["byStatus"] == {"Converted": 1}

    listing = client.get("/api/v1/leads", params={"q": "putri"}, headers=staff_headers).json()
    assert listing["total"] == 1
    assert client.delete(f"/api/v1/leads/{lead['id']}", headers=staff_headers).status_code == 200
    assert client.get(f"/api/v1/leads/{lead['id']}", headers=staff_headers).status_code == 404


def test_payment_method_endpoints(client, admin_headers, staff_headers):
    payload = {"name": "BCA Transfer", "providerName": "BCA", "accountName": "Studio Foto", "accountNumber": "7700"}
    assert client.post("/api/v1/payment-methods", json=payload, headers=staff_headers).status_code == 403
    res = client.post("/api/v1/payment-methods", json=payload, headers=admin_headers)
    assert res.status_code == 201
    method_id = res.json()["id"]

    assert client.get("/api/v1/payment-methods").status_code == 401
    assert len(client.get("/api/v1/payment-methods/active").json()["items"]) == 1

    res = client.patch(f"/api/v1/payment-methods/{method_id}", json={"isActive": False}, headers=admin_headers)
    assert res.json()["isActive"] is False
    assert client.get("/api/v1/payment-methods/active").json()["items"] == []
    assert len(client.get("/api/v1/payment-methods", headers=staff_headers).json()["items"]) == 1

    assert client.delete(f"/api/v1/payment-methods/{method_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/v1/payment-methods/{method_id}", headers=admin_headers).status_code == 404
