from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from review_tracker.clock import calendar_date
from review_tracker.main import create_app
from review_tracker.store import CsvQuestionRepository

from factories import FIXED_NOW, make_question, problem_url

TODAY = calendar_date(FIXED_NOW)


def _payload(slug: str, **extra) -> dict:
    body = {"name": slug.replace("-", " ").title(), "category": "Arrays", "url": problem_url(slug)}
    body.update(extra)
    return body


def _create(client: TestClient, slug: str, **extra) -> dict:
    resp = client.post("/api/questions", json=_payload(slug, **extra))
    assert resp.status_code == 201, resp.text
    return resp.json()["question"]


def test_healthz(client: TestClient):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_api_health_reports_uptime(client: TestClient):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["timestamp"]
    assert body["uptime"] >= 0


def test_create_returns_camel_case_question(client: TestClient):
    question = _create(client, "two-sum", notes="hash map")

    assert question["id"] == 1
    assert question["url"] == problem_url("two-sum")
    assert question["status"] == "not_started"
    assert question["reviewCount"] == 0
    assert question["difficultyHistory"] == []
    assert question["nextReviewAt"] is None
    assert question["notes"] == "hash map"
    assert "review_count" not in question


def test_create_accepts_legacy_url_field(client: TestClient):
    resp = client.post(
        "/api/questions",
        json={"name": "Valid Anagram", "category": "Strings", "leetcodeUrl": problem_url("valid-anagram")},
    )
    assert resp.status_code == 201
    assert resp.json()["question"]["url"] == problem_url("valid-anagram")


def test_create_writes_csv_snapshot(client: TestClient, app_settings):
    _create(client, "two-sum")
    assert app_settings.csv_path.exists()
    assert [q.url for q in CsvQuestionRepository(app_settings.csv_path).load_all()] == [problem_url("two-sum")]


def test_duplicate_url_conflict(client: TestClient):
    _create(client, "two-sum")
    resp = client.post("/api/questions", json=_payload("two-sum", name="Other"))
    assert resp.status_code == 409
    assert resp.json() == {"detail": "question with this URL already exists"}


@pytest.mark.parametrize(
    "body",
    [
        {"category": "Arrays", "url": problem_url("x")},
        {"name": "X", "category": "Arrays", "url": "https://example.com/x"},
        {"name": "", "category": "Arrays", "url": problem_url("x")},
        {"name": "X", "category": "Arrays", "url": problem_url("x"), "notes": "n" * 1001},
    ],
)
def test_create_rejects_invalid_body(client: TestClient, body):
    resp = client.post("/api/questions", json=body)
    assert resp.status_code == 422
    assert client.get("/api/questions").json()["total"] == 0


def test_get_missing_question_is_404(client: TestClient):
    resp = client.get("/api/questions/99")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "question not found"}


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("put", "/api/questions/99", {"name": "X"}),
        ("delete", "/api/questions/99", None),
        ("post", "/api/questions/99/complete", {"difficulty": "easy"}),
        ("post", "/api/questions/99/review", {"difficulty": "easy"}),
        ("post", "/api/questions/99/reset", None),
    ],
)
def test_mutations_on_missing_question_are_404(client: TestClient, method, path, body):
    resp = client.request(method.upper(), path, json=body)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "question not found"


def test_list_filters_and_pages(client: TestClient):
    _create(client, "a", category="Dynamic Programming")
    _create(client, "b", category="Graphs")
    _create(client, "c", category="Dynamic Programming")
    client.post("/api/questions/3/complete", json={"difficulty": "medium"})

    body = client.get("/api/questions", params={"category": "dynamic"}).json()
    assert body["total"] == 2
    assert body["page"] == 1

    body = client.get("/api/questions", params={"status": "under_review"}).json()
    assert [q["id"] for q in body["questions"]] == [3]

    body = client.get("/api/questions", params={"page": 2, "limit": 2}).json()
    assert [q["id"] for q in body["questions"]] == [3]
    assert body["total"] == 3


def test_list_rejects_unknown_status(client: TestClient):
    assert client.get("/api/questions", params={"status": "done"}).status_code == 422


def test_update_changes_descriptive_fields(client: TestClient):
    question = _create(client, "two-sum")
    resp = client.put(f"/api/questions/{question['id']}", json={"category": "Hashing", "notes": "one pass"})
    assert resp.status_code == 200
    updated = resp.json()["question"]
    assert updated["category"] == "Hashing"
    assert updated["notes"] == "one pass"
    assert updated["name"] == question["name"]


def test_update_to_taken_url_conflicts(client: TestClient):
    _create(client, "two-sum")
    other = _create(client, "three-sum")
    resp = client.put(f"/api/questions/{other['id']}", json={"url": problem_url("two-sum")})
    assert resp.status_code == 409


def test_complete_review_reset_flow(client: TestClient):
    question = _create(client, "two-sum")
    qid = question["id"]

    done = client.post(f"/api/questions/{qid}/complete", json={"difficulty": "easy"}).json()["question"]
    assert done["status"] == "under_review"
    assert done["reviewCount"] == 1
    assert done["nextReviewAt"].startswith((TODAY + timedelta(days=1)).isoformat())

    reviewed = client.post(
        f"/api/questions/{qid}/review", json={"difficulty": "hard", "notes": "forgot the map"}
    ).json()["question"]
    assert reviewed["status"] == "needs_attention"
    assert reviewed["reviewCount"] == 2
    assert reviewed["difficultyHistory"] == ["easy", "hard"]
    assert reviewed["notes"] == "forgot the map"

    reset = client.post(f"/api/questions/{qid}/reset").json()["question"]
    assert reset["status"] == "not_started"
    assert reset["reviewCount"] == 0
    assert reset["firstCompletedAt"] is None
    assert reset["notes"] == "forgot the map"


def test_review_rejects_unknown_difficulty(client: TestClient):
    question = _create(client, "two-sum")
    resp = client.post(f"/api/questions/{question['id']}/review", json={"difficulty": "trivial"})
    assert resp.status_code == 422


def test_delete_question(client: TestClient):
    question = _create(client, "two-sum")
    resp = client.delete(f"/api/questions/{question['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert client.get(f"/api/questions/{question['id']}").status_code == 404


def test_due_questions_and_stats(client: TestClient, clock):
    first = _create(client, "two-sum")
    second = _create(client, "three-sum")
    client.post(f"/api/questions/{first['id']}/complete", json={"difficulty": "easy"})
    client.post(f"/api/questions/{second['id']}/complete", json={"difficulty": "easy"})

    due = client.get("/api/questions/due").json()
    assert due["questions"] == []
    assert due["overdue"] == []
    assert {q["id"] for q in due["upcoming"]} == {first["id"], second["id"]}

    clock.advance(days=1)
    client.post(f"/api/questions/{second['id']}/review", json={"difficulty": "medium"})
    due = client.get("/api/questions/due").json()
    assert [q["id"] for q in due["questions"]] == [first["id"]]

    clock.advance(days=1)
    due = client.get("/api/questions/due").json()
    assert [q["id"] for q in due["overdue"]] == [first["id"]]

    stats = client.get("/api/stats").json()
    assert stats == {
        "totalQuestions": 2,
        "completed": 2,
        "inReview": 2,
        "dueToday": 0,
        "overdue": 1,
        "completedThisWeek": 2,
        "reviewedThisWeek": 1,
    }


def test_refresh_picks_up_external_edit(client: TestClient, app_settings):
    _create(client, "two-sum")

    external = CsvQuestionRepository(app_settings.csv_path)
    questions = external.load_all()
    questions.append(make_question(7, name="Added by hand"))
    external.save_all(questions)

    resp = client.post("/api/questions/refresh")
    assert resp.status_code == 200
    assert resp.json()["total"] == 2
    assert client.get("/api/questions/7").json()["question"]["name"] == "Added by hand"
    # 次の採番は最大 id + 1
    assert _create(client, "four-sum")["id"] == 8


def test_request_id_header_is_echoed(client: TestClient):
    resp = client.get("/healthz", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert client.get("/healthz").headers.get("X-Request-ID")


def test_unhandled_error_hides_internal_details(app_settings, clock):
    app = create_app(app_settings, clock=clock)

    @app.get("/boom")
    async def boom() -> None:  # pragma: no cover - 呼び出し側で検証
        raise RuntimeError("secret internals")

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/boom")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "internal server error"}
    assert "secret internals" not in resp.text


def test_startup_loads_existing_snapshot_and_backs_it_up(app_settings, clock):
    CsvQuestionRepository(app_settings.csv_path).save_all([make_question(3), make_question(5)])

    with TestClient(create_app(app_settings, clock=clock)) as client:
        body = client.get("/api/questions").json()
        assert [q["id"] for q in body["questions"]] == [3, 5]
        assert _create(client, "new-one")["id"] == 6

    backups = list(app_settings.backup_dir.glob("questions-*.csv"))
    assert len(backups) == 1
