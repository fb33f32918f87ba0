def test_fund_wallet(client, make_user, auth_headers):
    user = make_user(balance="0")

    res = client.post(
        "/api/v1/user/fund",
        json={"amount": 1000, "paymentMethod": "card"},
        headers=auth_headers(user),
    )

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["newBalance"] == 1000.0
    assert data["reference"].startswith("TXN-")
    assert data["transaction"]["type"] == "funding"
    assert data["transaction"]["status"] == "completed"
    assert data["transaction"]["payment_method"] == "card"


def test_fund_wallet_below_minimum(client, make_user, auth_headers):
    user = make_user(balance="0")

    res = client.post("/api/v1/user/fund", json={"amount": 50}, headers=auth_headers(user))

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Amount must be between 100.00 and 1,000,000.00"}


def test_fund_wallet_unknown_method_is_validation_error(client, make_user, auth_headers):
    user = make_user(balance="0")

    res = client.post(
        "/api/v1/user/fund",
        json={"amount": 500, "paymentMethod": "crypto"},
        headers=auth_headers(user),
    )

    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Validation failed"
    assert body["details"]["fields"][0]["field"] == "paymentMethod"


def test_profile_reports_stats_and_recent_activity(client, make_user, make_route, auth_headers):
    user = make_user(balance="0")
    route = make_route(price="150", seats=6)
    headers = auth_headers(user)
    client.post("/api/v1/user/fund", json={"amount": 1000}, headers=headers)
    client.post(
        "/api/v1/bookings",
        json={
            "routeId": route.id,
            "pickupLocation": "Hostel",
            "dropoffLocation": "Library",
            "departureTime": "2099-01-01T08:00:00Z",
            "numberOfSeats": 2,
        },
        headers=headers,
    )

    res = client.get("/api/v1/user/profile", headers=headers)

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["email"] == user.email
    assert data["stats"]["totalRides"] == 2
    assert data["stats"]["totalSpent"] == 300.0
    assert data["stats"]["currentBalance"] == 700.0
    assert len(data["recentBookings"]) == 1
    assert sorted(tx["type"] for tx in data["recentTransactions"]) == ["booking", "funding"]


def test_transactions_list_includes_booking_brief(client, make_user, make_route, auth_headers):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    headers = auth_headers(user)
    created = client.post(
        "/api/v1/bookings",
        json={
            "routeId": route.id,
            "pickupLocation": "Hostel",
            "dropoffLocation": "Library",
            "departureTime": "2099-01-01T08:00:00Z",
        },
        headers=headers,
    )
    code = created.json()["data"]["booking"]["booking_code"]

    res = client.get("/api/v1/transactions", headers=headers)

    assert res.status_code == 200
    rows = res.json()["data"]
    assert len(rows) == 1
    assert rows[0]["reference"] == code
    assert rows[0]["amount"] == 150.0
    assert rows[0]["booking"]["booking_code"] == code
