"""HTTP-level tests for the pricing, booking, ledger and admin routers."""

from datetime import date, timedelta
from decimal import Decimal

API = "/api/v1"
FLIGHT_DATE = (date.today() + timedelta(days=21)).isoformat()


def transport_body(**overrides):
    body = {
        "booking_type": "transport",
        "from_location": "GUA",
        "to_location": "ANTIGUA",
        "passenger_count": 2,
        "scheduled_date": FLIGHT_DATE,
        "scheduled_time": "09:30",
    }
    body.update(overrides)
    return body


async def create_booking(api, headers, **overrides):
    resp = await api.post(f"{API}/bookings", json=transport_body(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# --- service endpoints ---


async def test_root_and_health(api):
    assert (await api.get("/health")).json() == {"status": "healthy"}
    assert (await api.get("/")).json()["docs"] == "/docs"


# --- pricing ---


async def test_list_locations(api):
    resp = await api.get(f"{API}/pricing/locations", params={"kind": "airport"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == len(data["locations"])
    assert "GUA" in {loc["code"] for loc in data["locations"]}


async def test_transport_quote(api):
    resp = await api.post(
        f"{API}/pricing/transport",
        json={"from_location": "GUA", "to_location": "ANTIGUA", "passenger_count": 2},
    )
    assert resp.status_code == 200
    assert Decimal(resp.json()["total_price"]) == Decimal("117")


async def test_transport_quote_unknown_location(api):
    resp = await api.post(
        f"{API}/pricing/transport",
        json={"from_location": "GUA", "to_location": "MARS", "passenger_count": 1},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "unresolvable_location"
    assert "MARS" in body["detail"]
    assert body["record"] is None


async def test_experience_quote(api, experience):
    resp = await api.get(f"{API}/pricing/experiences/{experience.id}", params={"passengers": 2})
    assert resp.status_code == 200
    assert Decimal(resp.json()["total_price"]) == Decimal("800")


async def test_experience_quote_not_found(api):
    resp = await api.get(f"{API}/pricing/experiences/999")
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


# --- caller identity ---


async def test_missing_identity_headers(api):
    assert (await api.get(f"{API}/bookings")).status_code == 401


async def test_unknown_role_is_rejected(api):
    resp = await api.get(f"{API}/bookings", headers={"X-User-Id": "1", "X-User-Role": "captain"})
    assert resp.status_code == 401


async def test_admin_routes_require_admin(api, client, auth_headers):
    resp = await api.get(f"{API}/admin/dashboard", headers=auth_headers(client))
    assert resp.status_code == 403


# --- client bookings ---


async def test_create_and_read_booking(api, client, auth_headers):
    created = await create_booking(api, auth_headers(client))

    assert created["status"] == "pending"
    assert created["payment_status"] == "unpaid"
    assert created["booking_type"] == "transport"
    assert created["booking_reference"].startswith("HX")
    assert Decimal(created["total_price"]) == Decimal("117")
    assert created["price_breakdown"]["from_code"] == "GUA"

    resp = await api.get(f"{API}/bookings/{created['id']}", headers=auth_headers(client))
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]


async def test_create_experience_booking(api, client, auth_headers, experience):
    resp = await api.post(
        f"{API}/bookings",
        json={
            "booking_type": "experience",
            "experience_id": experience.id,
            "passenger_count": 3,
            "scheduled_date": FLIGHT_DATE,
            "scheduled_time": "07:00",
        },
        headers=auth_headers(client),
    )
    assert resp.status_code == 201
    assert resp.json()["booking_type"] == "experience"
    assert Decimal(resp.json()["total_price"]) == Decimal("1100")


async def test_create_booking_with_addons(api, client, auth_headers, addon):
    created = await create_booking(
        api,
        auth_headers(client),
        selected_addons=[{"addon_id": addon.id, "quantity": 2}],
        passenger_details=[{"name": "Ana Lopez", "dietary_restrictions": "vegetarian"}],
    )

    assert Decimal(created["total_price"]) == Decimal("167")
    assert Decimal(created["addon_total_price"]) == Decimal("50")
    assert created["selected_addons"][0]["name"] == "Aerial photo package"
    assert created["passenger_details"][0]["dietary_restrictions"] == "vegetarian"


async def test_create_booking_with_unknown_addon(api, client, auth_headers):
    resp = await api.post(
        f"{API}/bookings",
        json=transport_body(selected_addons=[{"addon_id": 404}]),
        headers=auth_headers(client),
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


async def test_create_booking_validation_error(api, client, auth_headers):
    resp = await api.post(
        f"{API}/bookings",
        json=transport_body(is_round_trip=True),
        headers=auth_headers(client),
    )
    assert resp.status_code == 422


async def test_other_client_cannot_read_booking(api, client, stranger, auth_headers):
    created = await create_booking(api, auth_headers(client))

    resp = await api.get(f"{API}/bookings/{created['id']}", headers=auth_headers(stranger))
    assert resp.status_code == 403
    assert resp.json()["error"] == "permission_denied"


async def test_list_only_own_bookings(api, client, stranger, auth_headers):
    await create_booking(api, auth_headers(client))
    await create_booking(api, auth_headers(stranger))

    resp = await api.get(f"{API}/bookings", headers=auth_headers(client))
    assert resp.json()["total"] == 1

    resp = await api.get(f"{API}/bookings", params={"status": "approved"}, headers=auth_headers(client))
    assert resp.json()["total"] == 0


async def test_client_cancels_pending_booking(api, client, auth_headers):
    created = await create_booking(api, auth_headers(client))

    resp = await api.post(
        f"{API}/bookings/{created['id']}/cancel",
        json={"reason": "Change of plans"},
        headers=auth_headers(client),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


async def test_booking_actions(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))
    url = f"{API}/bookings/{created['id']}/actions"

    resp = await api.get(url, headers=auth_headers(client))
    assert resp.json()["available_events"] == ["cancel"]
    assert resp.json()["can_pay"] is False

    await api.post(f"{API}/admin/bookings/{created['id']}/approve", headers=auth_headers(admin))

    resp = await api.get(url, headers=auth_headers(client))
    assert resp.json()["available_events"] == []
    assert resp.json()["can_pay"] is True

    resp = await api.get(url, headers=auth_headers(admin))
    assert set(resp.json()["available_events"]) == {"assign_crew", "cancel"}


# --- admin review and revision ---


async def test_revision_round_trip(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))
    booking_id = created["id"]

    resp = await api.post(
        f"{API}/admin/bookings/{booking_id}/revision",
        json={"revision_data": {"passenger_count": 3}, "revision_notes": "Extra seat needed"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "needs_revision"
    assert resp.json()["revision_data"]["total_price"] == "167"

    resp = await api.post(f"{API}/bookings/{booking_id}/revision/accept", headers=auth_headers(client))
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "approved"
    assert body["passenger_count"] == 3
    assert Decimal(body["total_price"]) == Decimal("167")
    assert body["revision_data"] is None


async def test_revision_to_past_date_is_rejected(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))
    yesterday = (date.today() - timedelta(days=1)).isoformat()

    resp = await api.post(
        f"{API}/admin/bookings/{created['id']}/revision",
        json={"revision_data": {"scheduled_date": yesterday}, "revision_notes": "Earlier slot"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 422

    resp = await api.get(f"{API}/bookings/{created['id']}", headers=auth_headers(client))
    assert resp.json()["status"] == "pending"
    assert resp.json()["scheduled_date"] == FLIGHT_DATE


async def test_illegal_transition_returns_conflict(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))

    resp = await api.post(f"{API}/admin/bookings/{created['id']}/complete", headers=auth_headers(admin))
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "illegal_transition"
    assert body["record"]["status"] == "pending"


async def test_full_lifecycle(api, client, admin, pilot_user, helicopter, auth_headers):
    created = await create_booking(api, auth_headers(client))
    booking_id = created["id"]

    resp = await api.post(
        f"{API}/admin/bookings/{booking_id}/approve",
        json={"admin_notes": "Weather looks fine"},
        headers=auth_headers(admin),
    )
    assert resp.json()["status"] == "approved"

    # fund the account
    resp = await api.post(
        f"{API}/transactions/top-up",
        json={"amount": "500", "payment_method": "bank_transfer", "reference": "BI-100"},
        headers=auth_headers(client),
    )
    assert resp.status_code == 201
    top_up = resp.json()
    assert top_up["status"] == "pending"

    resp = await api.post(
        f"{API}/admin/transactions/{top_up['id']}/approve", headers=auth_headers(admin)
    )
    assert resp.json()["status"] == "approved"

    resp = await api.post(
        f"{API}/bookings/{booking_id}/pay",
        json={"payment_method": "account_balance"},
        headers=auth_headers(client),
    )
    assert resp.status_code == 200
    payment = resp.json()
    assert payment["payment_status"] == "paid"
    assert Decimal(payment["new_balance"]) == Decimal("383")
    assert payment["booking"]["payment_status"] == "paid"

    resp = await api.post(
        f"{API}/admin/bookings/{booking_id}/assign",
        json={"pilot_id": pilot_user.id, "helicopter_id": helicopter.id},
        headers=auth_headers(admin),
    )
    assert resp.json()["status"] == "assigned"
    assert resp.json()["pilot_id"] == pilot_user.id

    resp = await api.post(f"{API}/admin/bookings/{booking_id}/complete", headers=auth_headers(admin))
    assert resp.json()["status"] == "completed"

    resp = await api.get(f"{API}/admin/bookings/{booking_id}/events", headers=auth_headers(admin))
    events = [e["event"] for e in resp.json()["events"]]
    assert events == ["create", "approve", "pay", "assign_crew", "complete"]

    resp = await api.get(f"{API}/transactions/balance", headers=auth_headers(client))
    balance = resp.json()
    assert Decimal(balance["balance"]) == Decimal("383")
    assert balance["is_consistent"] is True


async def test_insufficient_funds(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))
    await api.post(f"{API}/admin/bookings/{created['id']}/approve", headers=auth_headers(admin))

    resp = await api.post(
        f"{API}/bookings/{created['id']}/pay",
        json={"payment_method": "account_balance"},
        headers=auth_headers(client),
    )
    assert resp.status_code == 402
    body = resp.json()
    assert body["error"] == "insufficient_funds"
    assert body["record"]["payment_status"] == "unpaid"


async def test_delete_requires_confirmation(api, client, admin, auth_headers):
    created = await create_booking(api, auth_headers(client))
    url = f"{API}/admin/bookings/{created['id']}"

    resp = await api.delete(url, headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["error"] == "confirmation_required"

    resp = await api.delete(url, params={"confirm": "true"}, headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["deleted"] is True

    resp = await api.get(f"{API}/bookings/{created['id']}", headers=auth_headers(admin))
    assert resp.status_code == 404


# --- ledger ---


async def test_top_up_rejection_needs_reason(api, client, admin, auth_headers):
    resp = await api.post(
        f"{API}/transactions/top-up", json={"amount": "75"}, headers=auth_headers(client)
    )
    transaction_id = resp.json()["id"]

    resp = await api.post(
        f"{API}/admin/transactions/{transaction_id}/reject", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "missing_rejection_reason"

    resp = await api.post(
        f"{API}/admin/transactions/{transaction_id}/reject",
        json={"admin_notes": "No matching transfer"},
        headers=auth_headers(admin),
    )
    assert resp.json()["status"] == "rejected"

    resp = await api.post(
        f"{API}/admin/transactions/{transaction_id}/approve", headers=auth_headers(admin)
    )
    assert resp.status_code == 409


async def test_duplicate_approval_over_http(api, client, admin, auth_headers):
    resp = await api.post(
        f"{API}/transactions/top-up", json={"amount": "20"}, headers=auth_headers(client)
    )
    url = f"{API}/admin/transactions/{resp.json()['id']}/approve"

    assert (await api.post(url, headers=auth_headers(admin))).status_code == 200
    resp = await api.post(url, headers=auth_headers(admin))
    assert resp.status_code == 409
    assert resp.json()["error"] == "duplicate_approval"

    resp = await api.get(f"{API}/transactions/balance", headers=auth_headers(client))
    assert Decimal(resp.json()["balance"]) == Decimal("20")


async def test_invalid_top_up(api, client, auth_headers):
    resp = await api.post(
        f"{API}/transactions/top-up", json={"amount": "-5"}, headers=auth_headers(client)
    )
    assert resp.status_code == 422


async def test_list_transactions(api, client, stranger, admin, auth_headers):
    await api.post(f"{API}/transactions/top-up", json={"amount": "10"}, headers=auth_headers(client))
    await api.post(f"{API}/transactions/top-up", json={"amount": "30"}, headers=auth_headers(stranger))

    resp = await api.get(f"{API}/transactions", headers=auth_headers(client))
    assert resp.json()["total"] == 1

    resp = await api.get(
        f"{API}/admin/transactions", params={"status": "pending"}, headers=auth_headers(admin)
    )
    assert resp.json()["total"] == 2


async def test_dashboard(api, client, admin, auth_headers):
    first = await create_booking(api, auth_headers(client))
    await create_booking(api, auth_headers(client))
    await api.post(f"{API}/admin/bookings/{first['id']}/approve", headers=auth_headers(admin))
    await api.post(f"{API}/transactions/top-up", json={"amount": "60"}, headers=auth_headers(client))

    resp = await api.get(f"{API}/admin/dashboard", headers=auth_headers(admin))
    assert resp.status_code == 200
    data = resp.json()
    metrics = data["metrics"]
    assert metrics["total_bookings"] == 2
    assert metrics["awaiting_review"] == 1
    assert metrics["unassigned_approved"] == 1
    assert metrics["pending_transactions"] == 1
    assert Decimal(metrics["pending_deposit_amount"]) == Decimal("60")
    assert [f["booking_id"] for f in data["upcoming_flights"]] == [first["id"]]


# --- add-on catalogue ---


async def test_addon_catalogue(api, client, admin, auth_headers, addon):
    resp = await api.post(
        f"{API}/admin/addons",
        json={"name": "Champagne toast", "description": "Served on landing", "price": "85", "category": "catering"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    toast = resp.json()
    assert toast["is_active"] is True

    resp = await api.get(f"{API}/pricing/addons")
    assert [a["name"] for a in resp.json()["addons"]] == ["Champagne toast", "Aerial photo package"]

    resp = await api.patch(
        f"{API}/admin/addons/{toast['id']}", json={"is_active": False}, headers=auth_headers(admin)
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await api.get(f"{API}/pricing/addons")
    assert resp.json()["total"] == 1
    resp = await api.get(f"{API}/admin/addons", headers=auth_headers(admin))
    assert resp.json()["total"] == 2

    resp = await api.delete(f"{API}/admin/addons/{toast['id']}", headers=auth_headers(admin))
    assert resp.status_code == 204
    resp = await api.patch(
        f"{API}/admin/addons/{toast['id']}", json={"price": "10"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 404


async def test_clients_cannot_edit_addons(api, client, auth_headers, addon):
    resp = await api.patch(
        f"{API}/admin/addons/{addon.id}", json={"price": "1"}, headers=auth_headers(client)
    )
    assert resp.status_code == 403
