"""
Task API tests.
"""

from subsidy_workflow.services.state_table import Stage

URL = "/api/v1/tasks"
HDR = {"X-User": "u-staff"}


def _create(client, case, **kw):
    payload = {"case_id": case.id, "title": "Request missing deed"}
    payload.update(kw)
    return client.post(URL, headers=HDR, json=payload)


def test_create(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    res = _create(client, case, priority=2, assignee_id="u-9")
    assert res.status_code == 201
    task = res.get_json()["task"]
    assert task["kind"] == "AD_HOC"
    assert task["priority"] == 2
    assert task["assigned_by"] == "u-staff"
    assert task["auto_generated"] is False


def test_create_requires_title(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    res = client.post(URL, headers=HDR, json={"case_id": case.id})
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


def test_create_bad_priority(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    res = _create(client, case, priority=9)
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_create_requires_actor(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    res = client.post(URL, json={"case_id": case.id, "title": "x"})
    assert res.status_code == 401


def test_list_with_filters(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    other = make_case(Stage.DRAFT)
    _create(client, case, assignee_id="u-1")
    _create(client, other, assignee_id="u-1")

    res = client.get(f"{URL}?assignee_id=u-1", headers=HDR)
    assert res.status_code == 200
    assert res.get_json()["total"] == 2

    res = client.get(f"{URL}?case_id={case.id}&status=PENDING", headers=HDR)
    body = res.get_json()
    assert body["total"] == 1
    assert body["tasks"][0]["case_id"] == case.id


def test_list_bad_status(client):
    res = client.get(f"{URL}?status=FINISHED", headers=HDR)
    assert res.status_code == 400


def test_complete(client, make_case):
    case = make_case(Stage.INTAKE_REVIEW)
    task_id = _create(client, case, description="Ask for deed").get_json()["task"]["id"]

    res = client.put(f"{URL}/complete", headers=HDR,
                     json={"task_id": task_id, "notes": "Deed received"})
    assert res.status_code == 200
    task = res.get_json()["task"]
    assert task["status"] == "COMPLETED"
    assert task["completed_at"] is not None
    assert task["description"].endswith("Completion Notes: Deed received")

    res = client.put(f"{URL}/complete", headers=HDR, json={"task_id": task_id})
    assert res.status_code == 400


def test_complete_requires_task_id(client):
    res = client.put(f"{URL}/complete", headers=HDR, json={})
    assert res.status_code == 400
    assert res.get_json()["details"] == {"task_id": "required"}


def test_complete_unknown_task(client):
    res = client.put(f"{URL}/complete", headers=HDR, json={"task_id": 4242})
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"
