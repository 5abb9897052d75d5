"""HTTP tests for the student endpoints."""

import uuid

import pytest

BASE = "/api/v1/students"


def _names(resp):
    return sorted(s["name"] for s in resp.json()["data"])


# ── Create ───────────────────────────────────────────────────

def test_create_student_echoes_fields(client):
    payload = {
        "name": "Anna", "marks": 70, "course": "CS", "city": "Pune",
        "subjects": ["Python", "DBMS"], "enrolled": True,
    }
    resp = client.post(f"{BASE}/create", json=payload)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    for key, value in payload.items():
        assert data[key] == value
    uuid.UUID(data["id"])
    assert data["created_at"] is not None
    assert resp.headers.get("X-Request-ID")


def test_create_student_applies_defaults(make_student):
    data = make_student(subjects=[], city=None)
    assert data["enrolled"] is False
    assert data["subjects"] == []
    assert data["city"] is None


def test_created_ids_are_unique(make_student):
    ids = {make_student(name=f"S{i}")["id"] for i in range(5)}
    assert len(ids) == 5


def test_client_cannot_choose_id(client):
    forced = str(uuid.uuid4())
    resp = client.post(f"{BASE}/create", json={"id": forced, "name": "A", "marks": 1, "course": "CS"})
    assert resp.status_code == 201
    assert resp.json()["data"]["id"] != forced


@pytest.mark.parametrize("payload", [
    {"marks": 50, "course": "CS"},
    {"name": "A", "marks": "lots", "course": "CS"},
    {"name": "A", "marks": -1, "course": "CS"},
    {"name": "", "marks": 10, "course": "CS"},
])
def test_create_student_validation_failure(client, payload):
    resp = client.post(f"{BASE}/create", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]


def test_bulk_create(client):
    payload = [
        {"name": "A", "marks": 10, "course": "CS"},
        {"name": "B", "marks": 20, "course": "Math"},
    ]
    resp = client.post(f"{BASE}/create/bulk", json=payload)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["count"] == 2
    assert [s["name"] for s in body["data"]] == ["A", "B"]


def test_bulk_create_rejects_whole_batch_on_invalid_item(client):
    payload = [
        {"name": "A", "marks": 10, "course": "CS"},
        {"name": "B", "course": "Math"},
    ]
    resp = client.post(f"{BASE}/create/bulk", json=payload)

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert client.get(f"{BASE}/get").json()["count"] == 0


# ── Read ─────────────────────────────────────────────────────

def test_list_students_newest_first(client, make_student):
    for i in range(4):
        make_student(name=f"S{i}")

    resp = client.get(f"{BASE}/get")

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 4
    created = [s["created_at"] for s in body["data"]]
    assert created == sorted(created, reverse=True)
    assert body["data"][0]["name"] == "S3"


def test_list_students_empty(client):
    body = client.get(f"{BASE}/get").json()
    assert body == {"success": True, "count": 0, "data": []}


def test_get_student_is_idempotent(client, make_student):
    student = make_student()
    first = client.get(f"{BASE}/get/{student['id']}")
    second = client.get(f"{BASE}/get/{student['id']}")

    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()["data"] == student


def test_get_student_not_found(client):
    resp = client.get(f"{BASE}/get/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Student not found"}


@pytest.mark.parametrize("method, path", [
    ("GET", "/get/not-an-id"),
    ("PUT", "/update/not-an-id"),
    ("PUT", "/update/not-an-id/operators"),
    ("DELETE", "/delete/not-an-id"),
])
def test_by_id_endpoints_reject_malformed_id(client, method, path):
    resp = client.request(method, f"{BASE}{path}")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


# ── Filter ───────────────────────────────────────────────────

@pytest.fixture
def roster(make_student):
    make_student(name="Asha", marks=80, course="Math", city="Delhi")
    make_student(name="Bilal", marks=40, course="Math", city="Mumbai")
    make_student(name="Chen", marks=55, course="CS", city="Pune")
    make_student(name="Dev", marks=30, course="CS", city="Mumbai")
    make_student(name="Esha", marks=90, course="Physics", city="Chennai")
    make_student(name="Farah", marks=20, course="Physics", city="Mumbai")


def test_filter_min_marks_and_courses(client, roster):
    resp = client.get(f"{BASE}/filter", params={"minMarks": 50, "courses": "Math,CS"})

    assert resp.status_code == 200
    body = resp.json()
    assert _names(resp) == ["Asha", "Chen"]
    assert body["count"] == 2
    assert body["description"] == "Filtered students using gte, in operators"


def test_filter_city_or_min_marks(client, roster):
    resp = client.get(f"{BASE}/filter", params={"minMarks": 50, "city": "Mumbai"})
    assert _names(resp) == ["Asha", "Bilal", "Chen", "Dev", "Esha", "Farah"]

    resp = client.get(f"{BASE}/filter", params={"minMarks": 85, "city": "Mumbai"})
    assert _names(resp) == ["Bilal", "Dev", "Esha", "Farah"]
    assert "or" in resp.json()["description"]


def test_filter_course_still_anded_with_or(client, roster):
    resp = client.get(f"{BASE}/filter", params={"minMarks": 50, "city": "Mumbai", "courses": "CS"})
    assert _names(resp) == ["Chen", "Dev"]


def test_filter_city_alone_returns_everyone(client, roster):
    resp = client.get(f"{BASE}/filter", params={"city": "Mumbai"})
    assert resp.json()["count"] == 6


def test_filter_without_parameters(client, roster):
    body = client.get(f"{BASE}/filter").json()
    assert body["count"] == 6
    assert body["success"] is True


def test_filter_blank_min_marks_means_no_threshold(client, roster):
    resp = client.get(f"{BASE}/filter?minMarks=&courses=CS")
    assert resp.status_code == 200
    assert _names(resp) == ["Chen", "Dev"]


def test_filter_all_blank_parameters_returns_everyone(client, roster):
    resp = client.get(f"{BASE}/filter?minMarks=&courses=&city=")
    assert resp.status_code == 200
    assert resp.json()["count"] == 6


def test_filter_blank_min_marks_with_city_adds_no_clause(client, roster):
    resp = client.get(f"{BASE}/filter?minMarks=&city=Mumbai")
    assert resp.json()["count"] == 6


def test_filter_rejects_non_numeric_min_marks(client):
    resp = client.get(f"{BASE}/filter", params={"minMarks": "abc"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


# ── Search ───────────────────────────────────────────────────

def test_search_is_case_insensitive(client, make_student):
    make_student(name="Anna")
    make_student(name="ANNE")
    make_student(name="Bob")

    resp = client.get(f"{BASE}/search/ann")

    assert resp.status_code == 200
    body = resp.json()
    assert _names(resp) == ["ANNE", "Anna"]
    assert body["count"] == 2
    assert body["description"] == "Students matching 'ann' (case-insensitive)"


def test_search_supports_patterns(client, make_student):
    make_student(name="Anna")
    make_student(name="Hannah")
    resp = client.get(f"{BASE}/search/^an")
    assert _names(resp) == ["Anna"]


def test_search_invalid_pattern(client):
    resp = client.get(f"{BASE}/search/ann[")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


# ── Update ───────────────────────────────────────────────────

def test_update_student(client, make_student):
    student = make_student(marks=40)
    resp = client.put(f"{BASE}/update/{student['id']}", json={"marks": 75, "city": "Goa"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["marks"] == 75
    assert data["city"] == "Goa"
    assert data["name"] == student["name"]
    assert data["created_at"] == student["created_at"]


def test_update_student_revalidates(client, make_student):
    student = make_student()
    resp = client.put(f"{BASE}/update/{student['id']}", json={"marks": -5})
    assert resp.status_code == 400

    resp = client.put(f"{BASE}/update/{student['id']}", json={"name": None})
    assert resp.status_code == 400
    assert client.get(f"{BASE}/get/{student['id']}").json()["data"]["name"] == student["name"]


def test_update_without_body_returns_unchanged_student(client, make_student):
    student = make_student()
    resp = client.put(f"{BASE}/update/{student['id']}")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": student}


def test_update_with_empty_object_returns_unchanged_student(client, make_student):
    student = make_student()
    resp = client.put(f"{BASE}/update/{student['id']}", json={})

    assert resp.status_code == 200
    assert resp.json()["data"] == student


def test_update_student_not_found(client):
    resp = client.put(f"{BASE}/update/{uuid.uuid4()}", json={"marks": 10})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Student not found"


def test_operator_update_is_cumulative(client, make_student):
    student = make_student(marks=60, subjects=["Python"])
    url = f"{BASE}/update/{student['id']}/operators"

    first = client.put(url)
    assert first.status_code == 200
    assert first.json()["description"] == "Updated using inc, push, set operators"
    assert first.json()["data"]["enrolled"] is True

    data = client.put(url).json()["data"]
    assert data["marks"] == 70
    assert data["subjects"] == ["Python", "AI", "AI"]
    assert data["enrolled"] is True


def test_operator_update_not_found(client):
    resp = client.put(f"{BASE}/update/{uuid.uuid4()}/operators")
    assert resp.status_code == 404


# ── Delete ───────────────────────────────────────────────────

def test_delete_is_one_shot(client, make_student):
    student = make_student()

    first = client.delete(f"{BASE}/delete/{student['id']}")
    assert first.status_code == 200
    body = first.json()
    assert body["message"] == "Student deleted successfully"
    assert body["data"]["id"] == student["id"]

    second = client.delete(f"{BASE}/delete/{student['id']}")
    assert second.status_code == 404
    assert client.get(f"{BASE}/get").json()["count"] == 0


# ── Aggregation ──────────────────────────────────────────────

def test_stats_per_course(client, roster):
    resp = client.get(f"{BASE}/stats")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["description"] == "Course-wise statistics using group, count, avg, max, min"

    groups = body["data"]
    assert [g["course"] for g in groups] == ["Math", "Physics", "CS"]
    math = groups[0]
    assert math["total_students"] == 2
    assert math["average_marks"] == pytest.approx(60.0)
    assert math["max_marks"] == 80
    assert math["min_marks"] == 40
    cs = groups[2]
    assert cs["average_marks"] == pytest.approx(42.5)
    assert (cs["max_marks"], cs["min_marks"]) == (55, 30)


def test_stats_empty(client):
    body = client.get(f"{BASE}/stats").json()
    assert body["data"] == []


# ── Misc ─────────────────────────────────────────────────────

def test_unknown_path_uses_error_envelope(client):
    resp = client.get("/api/v1/students/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Not Found"


def test_wrong_method_uses_error_envelope(client):
    resp = client.post(f"{BASE}/stats")
    assert resp.status_code == 405
    assert resp.json() == {"success": False, "error": "Method Not Allowed"}
    assert "GET" in resp.headers.get("allow", "")


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
