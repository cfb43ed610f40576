TICKET = {
    "module": "IT",
    "sub_category": "Hardware",
    "subject": "Laptop screen flickers",
    "description": "The screen flickers every few minutes after docking.",
    "urgency": "high",
}


def submit(client, auth, emp_no="emp001", **overrides):
    res = client.post("/tickets", json={**TICKET, **overrides}, headers=auth(emp_no))
    assert res.status_code == 200, res.text
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requires_a_token(client):
    assert client.get("/tickets").status_code == 401
    assert client.get("/tickets", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_create_and_approve_over_http(client, auth):
    ticket = submit(client, auth)
    assert ticket["status"] == "Pending Approval L1"
    assert ticket["current_approval_level"] == "L1"
    assert ticket["requester_name"] == "Kim Minji"

    res = client.post(
        f"/tickets/{ticket['id']}/approvals/L1",
        json={"decision": "Approved", "remarks": "OK"},
        headers=auth("it.manager"),
    )
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "In Queue"
    assert res.json()["approval_completed"] is True
    assert res.json()["specialist_queue"] == "Hardware Team"

    levels = client.get(f"/tickets/{ticket['id']}/approvals", headers=auth("emp001")).json()
    assert [(lv["level"], lv["decision"]) for lv in levels] == [("L1", "Approved")]


def test_route_is_for_specialists_and_idempotent(client, auth):
    ticket = submit(client, auth)
    client.post(f"/tickets/{ticket['id']}/approvals/L1", json={"decision": "Approved"}, headers=auth("it.manager"))
    stored = client.get(f"/tickets/{ticket['id']}", headers=auth("emp001")).json()
    assert stored["status"] == "In Queue"

    assert client.post(f"/tickets/{ticket['id']}/route", headers=auth("emp001")).status_code == 403

    # 최종 승인 때 이미 라우팅되었으므로 다시 호출해도 그대로
    res = client.post(f"/tickets/{ticket['id']}/route", headers=auth("it.specialist"))
    assert res.status_code == 200, res.text
    assert res.json()["routed_to"] == "IT"
    assert res.json()["already_routed"] is True
    assert res.json()["routed_at"] == stored["routed_at"]


def test_conflicting_decisions_return_409_codes(client, auth):
    ticket = submit(client, auth)
    url = f"/tickets/{ticket['id']}/approvals"

    stale = client.post(f"{url}/L2", json={"decision": "Approved"}, headers=auth("it.manager"))
    assert stale.status_code == 409
    assert stale.json()["code"] == "STALE_LEVEL"

    assert client.post(f"{url}/L1", json={"decision": "Rejected"}, headers=auth("it.manager")).status_code == 200
    again = client.post(f"{url}/L1", json={"decision": "Approved"}, headers=auth("it.manager"))
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_DECIDED"

    # 잘못된 결정 값은 서비스까지 가지 않는다
    bad = client.post(f"{url}/L1", json={"decision": "Maybe"}, headers=auth("it.manager"))
    assert bad.status_code == 422


def test_detail_bundles_timeline_and_sla(client, auth):
    ticket = submit(client, auth, sub_category="Network / Connectivity", subject="VPN keeps dropping")
    res = client.get(f"/tickets/{ticket['id']}/detail", headers=auth("emp001"))
    assert res.status_code == 200, res.text
    body = res.json()

    assert body["ticket"]["status"] == "In Queue"
    assert [e["kind"] for e in body["events"]][:2] == ["created", "approval_bypassed"]
    assert [s["label"] for s in body["timeline"]][:2] == ["Submitted", "Routed to Department"]
    assert body["sla"]["phase"] == "processing"
    assert body["sla"]["is_overdue"] is False
    assert body["approval_levels"] == []


def test_list_is_scoped_and_refreshed_after_commands(client, auth):
    ticket = submit(client, auth)
    mine = client.get("/tickets", headers=auth("emp001")).json()
    assert [t["id"] for t in mine] == [ticket["id"]]
    assert mine[0]["status"] == "Pending Approval L1"

    assert client.get("/tickets", headers=auth("emp002")).json() == []
    pending = client.get("/tickets?scope=approvals", headers=auth("it.manager")).json()
    assert [t["id"] for t in pending] == [ticket["id"]]

    client.post(f"/tickets/{ticket['id']}/cancel", json={"reason": "Fixed itself"}, headers=auth("emp001"))
    mine = client.get("/tickets", headers=auth("emp001")).json()
    assert mine[0]["status"] == "Cancelled"
    assert client.get("/tickets?scope=approvals", headers=auth("it.manager")).json() == []


def test_list_filters_need_the_right_role(client, auth):
    assert client.get("/tickets?unrouted=true", headers=auth("emp001")).status_code == 403
    assert client.get("/tickets?unrouted=true", headers=auth("it.specialist")).status_code == 200
    assert client.get("/tickets?scope=everything", headers=auth("emp001")).status_code == 422


def test_other_employees_cannot_see_a_ticket(client, auth):
    ticket = submit(client, auth)
    assert client.get(f"/tickets/{ticket['id']}", headers=auth("emp002")).status_code == 403
    assert client.get(f"/tickets/{ticket['id']}", headers=auth("it.manager")).status_code == 200
    missing = client.get("/tickets/9999", headers=auth("emp001"))
    assert missing.status_code == 404
    assert missing.json()["code"] == "TICKET_NOT_FOUND"


def test_full_work_cycle_over_http(client, auth):
    ticket = submit(client, auth, sub_category="Network / Connectivity", subject="VPN keeps dropping")
    tid = ticket["id"]
    staff = auth("it.specialist")

    res = client.post(f"/tickets/{tid}/assign", json={"specialist_id": "it.specialist"}, headers=staff)
    assert res.status_code == 200, res.text
    assert res.json()["assigned_to_name"] == "IT Specialist"

    assert client.post(f"/tickets/{tid}/start", headers=staff).json()["status"] == "In Progress"
    done = client.post(f"/tickets/{tid}/complete", json={"notes": "Replaced the router"}, headers=staff).json()
    assert done["status"] == "Awaiting User Confirmation"

    early = client.post(f"/tickets/{tid}/close", json={}, headers=staff)
    assert early.status_code == 409
    assert early.json()["code"] == "INVALID_TRANSITION"

    client.post(f"/tickets/{tid}/confirm", json={"feedback": "Works"}, headers=auth("emp001"))
    closed = client.post(f"/tickets/{tid}/close", json={"note": "Done"}, headers=staff).json()
    assert closed["status"] == "Closed"
    assert closed["closing_reason"] == "User Confirmed"

    reopened = client.post(f"/tickets/{tid}/reopen", json={"reason": "Dropping again"}, headers=auth("emp001"))
    assert reopened.json()["status"] == "Reopened"
    assert reopened.json()["reopen_count"] == 1


def test_messages_over_http(client, auth):
    ticket = submit(client, auth)
    res = client.post(f"/tickets/{ticket['id']}/messages", json={"text": "Any update?"}, headers=auth("emp001"))
    assert res.status_code == 200, res.text
    assert res.json()["sender_role"] == "employee"

    listed = client.get(f"/tickets/{ticket['id']}/messages", headers=auth("emp001")).json()
    assert [m["body"] for m in listed] == ["Any update?"]
    assert client.get(f"/tickets/{ticket['id']}/messages", headers=auth("emp002")).status_code == 403


def test_category_policies_admin_only(client, auth):
    payload = {
        "module": "Facilities",
        "sub_category": "Parking",
        "processing_queue": "Facilities",
        "specialist_queue": "Maintenance",
        "requires_approval": True,
        "approvers": [{"level": "L1", "emp_no": "it.manager"}],
    }
    assert client.post("/category-policies", json=payload, headers=auth("emp001")).status_code == 403

    res = client.post("/category-policies", json=payload, headers=auth("admin"))
    assert res.status_code == 200, res.text
    assert res.json()["approvers"] == [{"level": "L1", "emp_no": "it.manager"}]

    dup = client.post("/category-policies", json=payload, headers=auth("admin"))
    assert dup.status_code == 409

    subs = [p["sub_category"] for p in client.get("/category-policies?module=Facilities").json()]
    assert "Parking" in subs


def test_queues_list_member_counts(client, auth):
    queues = client.get("/queues?module=IT", headers=auth("emp001")).json()
    by_name = {q["queue"]: q for q in queues}
    assert by_name["Network Team"]["member_count"] == 2
    assert all(q["module"] == "IT" for q in queues)

    specialists = client.get("/queues/IT/Network Team/specialists", headers=auth("it.specialist")).json()
    assert {s["id"] for s in specialists} == {"it.specialist", "it.specialist2"}
    assert client.get("/queues/IT/Nowhere/specialists", headers=auth("it.specialist")).status_code == 404
