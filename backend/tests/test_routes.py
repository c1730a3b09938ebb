"""
HTTP layer: JSON bodies in, result objects and structured errors out.
"""

HEADERS = {"X-User-Id": "7"}


def _open(client, **extra):
    body = {"owner_float": 100000, "chip_inventory": {"chips_100": 50, "chips_500": 20}}
    body.update(extra)
    return client.post("/api/sessions", json=body, headers=HEADERS)


class TestSessionRoutes:
    def test_open_and_fetch_active(self, client, db_session):
        response = _open(client)
        assert response.status_code == 201
        session = response.json["session"]
        assert session["opened_by_user_id"] == 7
        assert "message" in response.json

        response = client.get("/api/sessions/active")
        assert response.json["session"]["id"] == session["id"]

    def test_duplicate_open_is_conflict(self, client, db_session):
        _open(client)
        response = _open(client)
        assert response.status_code == 409
        assert response.json["code"] == "SESSION_ALREADY_OPEN"

    def test_bad_float_is_rejected(self, client, db_session):
        response = client.post("/api/sessions", json={"owner_float": "12.5"})
        assert response.status_code == 400
        assert response.json["code"] == "INVALID_AMOUNT"

    def test_dashboard_and_verify(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        client.post(
            f"/api/sessions/{session_id}/buy-in",
            json={"player_name": "Walk-in", "amount": 5000, "chip_breakdown": {"chips_500": 10}},
            headers=HEADERS,
        )

        dashboard = client.get(f"/api/sessions/{session_id}/dashboard").json
        assert dashboard["wallets"]["secondary_wallet"] == 5000
        assert dashboard["chips_in_circulation"] == 5000
        assert dashboard["reconciliation"]["consistent"] is True

        verify = client.get(f"/api/sessions/{session_id}/verify").json
        assert verify == {"consistent": True, "drifts": []}

    def test_close_and_summary(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        response = client.post(f"/api/sessions/{session_id}/close", headers=HEADERS)
        assert response.status_code == 200
        assert response.json["summary"]["closed_by_user_id"] == 7

        summary = client.get(f"/api/sessions/{session_id}/summary").json["summary"]
        assert summary["net_result"] == 0

        listing = client.get("/api/sessions/summaries").json["summaries"]
        assert [s["session_id"] for s in listing] == [session_id]

    def test_float_addition(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        response = client.post(f"/api/sessions/{session_id}/float", json={"amount": 25000, "reason": "Top-up"})
        assert response.status_code == 201
        assert client.get(f"/api/sessions/{session_id}/float").json["total_additions"] == 25000

    def test_unknown_session(self, client, db_session):
        response = client.get("/api/sessions/999/dashboard")
        assert response.status_code == 404
        assert response.json["code"] == "NO_ACTIVE_SESSION"


class TestCashierRoutes:
    def test_insufficient_chips_detail(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        response = client.post(
            f"/api/sessions/{session_id}/buy-in",
            json={"player_name": "Walk-in", "amount": 15000, "chip_breakdown": {"chips_500": 30}},
        )
        assert response.status_code == 409
        assert response.json["code"] == "INSUFFICIENT_CHIPS"
        assert response.json["details"]["shortages"][0]["short_by"] == 10

    def test_player_resolved_by_phone(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        player = client.post(
            "/api/players", json={"player_name": "Asha", "phone_number": "9811111111", "credit_limit": 10000}
        ).json["player"]

        response = client.post(
            f"/api/sessions/{session_id}/buy-in",
            json={"phone_number": "9811111111", "amount": 1000, "chip_breakdown": {"chips_500": 2}},
        )
        assert response.json["player_id"] == player["id"]

        status = client.get(f"/api/sessions/{session_id}/players/{player['id']}/status").json
        assert status["chips_balance"] == 1000

    def test_dealer_tip_requires_dealer(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        response = client.post(f"/api/sessions/{session_id}/dealer-tips", json={"chip_breakdown": {"chips_100": 5}})
        assert response.status_code == 400


class TestCreditRoutes:
    def test_request_auto_approved_then_settled(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        player = client.post("/api/players", json={"player_name": "Regular", "credit_limit": 10000}).json["player"]

        response = client.post(
            "/api/credits/requests",
            json={"session_id": session_id, "player_id": player["id"], "amount": 2000},
        )
        assert response.status_code == 201
        assert response.json["auto_approved"] is True

        response = client.post(
            "/api/credits/settle",
            json={"session_id": session_id, "player_id": player["id"], "amount": 2000, "payment_mode": "online_sbi"},
        )
        assert response.status_code == 201
        assert response.json["fully_settled"] is True

    def test_request_pending_for_player_without_limit(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        player = client.post("/api/players", json={"player_name": "Walk-in"}).json["player"]

        response = client.post(
            "/api/credits/requests",
            json={"session_id": session_id, "player_id": player["id"], "amount": 1000},
        )
        assert response.status_code == 202

        pending = client.get(f"/api/credits/requests?session_id={session_id}").json["requests"]
        assert len(pending) == 1

        response = client.post(f"/api/sessions/{session_id}/close")
        assert response.status_code == 409
        assert response.json["code"] == "PENDING_CREDIT_REQUESTS"

    def test_credit_limit_exceeded(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        player = client.post("/api/players", json={"player_name": "Capped", "credit_limit": 1000}).json["player"]
        response = client.post(
            "/api/credits/issue",
            json={"session_id": session_id, "player_id": player["id"], "chip_breakdown": {"chips_500": 4}},
        )
        assert response.status_code == 409
        assert response.json["details"]["available"] == 1000


def test_health(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json["checks"]["database"]["status"] == "healthy"


def test_session_lookup_by_date_and_float_history(client, db_session):
    session = _open(client, session_date="2026-03-01").json["session"]
    client.post(f"/api/sessions/{session['id']}/float", json={"amount": 5000})

    found = client.get("/api/sessions/by-date/2026-03-01").json["session"]
    assert found["id"] == session["id"]
    assert client.get("/api/sessions/by-date/2026-03-02").status_code == 404

    additions = client.get(f"/api/sessions/{session['id']}/float/history").json["additions"]
    assert [a["float_amount"] for a in additions] == [5000]


class TestInputBoundaries:
    def test_malformed_dates_are_rejected(self, client, db_session):
        response = client.get("/api/sessions/active?date=not-a-date")
        assert response.status_code == 400
        assert response.json["code"] == "VALIDATION_ERROR"

        assert client.get("/api/sessions/by-date/2026-13-45").status_code == 400

        response = client.post("/api/sessions", json={"owner_float": 1000, "session_date": 20261017})
        assert response.status_code == 400
        assert response.json["details"]["field"] == "session_date"

    def test_blank_date_means_today(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        assert client.get("/api/sessions/active?date=").json["session"]["id"] == session_id

    def test_reopen_false_as_string_is_plain_open(self, client, db_session):
        response = _open(client, reopen="false")
        assert response.status_code == 201

    def test_reopen_must_be_boolean(self, client, db_session):
        response = _open(client, reopen="yes")
        assert response.status_code == 400
        assert response.json["details"]["field"] == "reopen"

    def test_oversized_chip_count_is_rejected(self, client, db_session):
        session_id = _open(client).json["session"]["id"]
        response = client.post(
            f"/api/sessions/{session_id}/dealer-tips",
            json={
                "dealer_id": 3,
                "dealer_name": "Ravi",
                "cash_percentage": 0,
                "chip_breakdown": {"chips_100": 10**19},
            },
        )
        assert response.status_code == 400
        assert response.json["code"] == "INVALID_AMOUNT"
