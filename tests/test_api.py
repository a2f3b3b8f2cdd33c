import csv
import io
import json
from datetime import date

from app.main import app
from app.services.auth import require_dashboard_auth


def _submit(client, payload, **headers):
    return client.post("/api/surveys", json=payload, headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_accepted_submission_is_visible_in_stats(client, auth, complete_payload):
    resp = _submit(client, complete_payload)
    assert resp.status_code == 201
    assert resp.json() == {"message": "Submission accepted"}

    stats = client.get("/api/stats", auth=auth).json()

    assert stats["count"] == 1
    assert stats["validCount"] == 1
    assert stats["demographics"]["gender"] == {"female": 1}
    assert stats["likertStats"]["q1"] == {"average": 4.0, "answered": 1}
    assert stats["submissions"][0]["ip"] == "testclient"


def test_ineligible_visitor_counts_only_in_total(client, auth):
    assert _submit(client, {"visited": "no"}).status_code == 201

    stats = client.get("/api/stats", auth=auth).json()

    assert stats["count"] == 1
    assert stats["validCount"] == 0
    assert stats["demographics"] == {"gender": {}, "age": {}}
    assert all(s["answered"] == 0 and s["average"] is None for s in stats["likertStats"].values())


def test_out_of_range_rating_rejected(client, complete_payload):
    complete_payload["q1"] = "6"

    resp = _submit(client, complete_payload)

    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    assert len(body["errors"]) == 1
    assert "q1" in body["errors"][0]


def test_missing_gate_returns_single_error(client):
    resp = _submit(client, {"gender": "male"})

    assert resp.status_code == 400
    assert len(resp.json()["errors"]) == 1


def test_non_object_body_rejected(client):
    resp = client.post("/api/surveys", json=["visited", "yes"])
    assert resp.status_code == 422


def test_two_ratings_average_through_api(client, auth, complete_payload):
    _submit(client, {**complete_payload, "q2": 4})
    _submit(client, {**complete_payload, "q2": 5})

    stats = client.get("/api/stats", auth=auth).json()

    assert stats["likertStats"]["q2"] == {"average": 4.5, "answered": 2}


def test_forwarded_for_first_hop_recorded(client, auth):
    _submit(client, {"visited": "no"}, **{"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

    stats = client.get("/api/stats", auth=auth).json()

    assert stats["submissions"][0]["ip"] == "203.0.113.9"


def test_forwarded_for_ignored_when_proxy_untrusted(client, auth, monkeypatch):
    from app import config
    monkeypatch.setattr(config, "TRUST_PROXY_HEADERS", False)

    _submit(client, {"visited": "no"}, **{"X-Forwarded-For": "203.0.113.9"})

    stats = client.get("/api/stats", auth=auth).json()
    assert stats["submissions"][0]["ip"] == "testclient"


def test_start_date_after_all_submissions(client, auth, complete_payload):
    _submit(client, complete_payload)

    stats = client.get("/api/stats", params={"startDate": "2999-01-01"}, auth=auth).json()

    assert stats["count"] == 0
    assert stats["submissions"] == []
    assert all(s["average"] is None for s in stats["likertStats"].values())


def test_date_range_including_today(client, auth, complete_payload):
    _submit(client, complete_payload)
    stats = client.get("/api/stats", params={"startDate": "2000-01-01", "endDate": "2999-12-31"}, auth=auth).json()

    assert stats["count"] == 1
    assert stats["submissions"][0]["submittedAt"][:10] <= "2999-12-31"


def test_malformed_date_rejected(client, auth):
    resp = client.get("/api/stats", params={"startDate": "not-a-date"}, auth=auth)
    assert resp.status_code == 422


def test_stats_and_download_require_auth(client):
    for path in ("/api/stats", "/api/download"):
        resp = client.get(path)
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == 'Basic realm="Stats Dashboard"'


def test_wrong_password_rejected(client, auth):
    resp = client.get("/api/stats", auth=(auth[0], "wrong"))
    assert resp.status_code == 401


def test_unconfigured_credentials_deny_everyone(client, auth, monkeypatch):
    from app import config
    monkeypatch.setattr(config, "STATS_PASSWORD", None)

    assert client.get("/api/stats", auth=auth).status_code == 401


def test_auth_gate_is_pluggable(client):
    app.dependency_overrides[require_dashboard_auth] = lambda: "anyone"
    try:
        assert client.get("/api/stats").status_code == 200
    finally:
        app.dependency_overrides.pop(require_dashboard_auth, None)


def test_submission_is_open_without_auth(client):
    assert _submit(client, {"visited": "no"}).status_code == 201


def test_csv_download(client, auth, complete_payload):
    complete_payload["gender"] = 'prefers "not", to say'
    _submit(client, complete_payload)

    resp = client.get("/api/download", auth=auth)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.headers["content-disposition"] == (
        f'attachment; filename="survey-data-{date.today().isoformat()}.csv"'
    )
    assert resp.content.startswith(b"\xef\xbb\xbf")
    rows = list(csv.DictReader(io.StringIO(resp.content.decode("utf-8-sig"))))
    assert rows[0]["gender"] == 'prefers "not", to say'
    assert rows[0]["channels"] == "friends;social media"
    assert rows[0]["ip"] == "testclient"


def test_json_download(client, auth, complete_payload):
    _submit(client, complete_payload)

    resp = client.get("/api/download", params={"format": "json"}, auth=auth)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.headers["content-disposition"].endswith('.json"')
    records = json.loads(resp.content)
    assert records[0]["gender"] == "female"
    assert "submittedAt" in records[0]


def test_download_filtered_out_range_is_header_only(client, auth, complete_payload):
    _submit(client, complete_payload)

    resp = client.get("/api/download", params={"endDate": "2000-01-01"}, auth=auth)

    assert len(resp.content.decode("utf-8-sig").splitlines()) == 1


def test_unknown_download_format(client, auth):
    resp = client.get("/api/download", params={"format": "xml"}, auth=auth)
    assert resp.status_code == 400


def test_storage_failure_returns_generic_500(client, complete_payload, monkeypatch):
    service = app.state.survey_service

    def broken_write(path, data):
        raise OSError("/secret/path is read-only")

    monkeypatch.setattr(service.store.storage, "write_json", broken_write)

    resp = _submit(client, complete_payload)

    assert resp.status_code == 500
    assert "secret" not in resp.text


def test_stats_storage_failure_returns_500(client, auth, monkeypatch):
    service = app.state.survey_service

    def broken_read(path):
        raise OSError("boom")

    monkeypatch.setattr(service.store.storage, "read_json", broken_read)

    resp = client.get("/api/stats", auth=auth)

    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to build statistics"}


def test_startup_warm_up_loads_existing_records(tmp_path, schema, monkeypatch):
    from fastapi.testclient import TestClient
    from app import config

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "responses.json").write_text(
        json.dumps([{"visited": "no", "submittedAt": "2025-03-10T08:00:00Z"}]), encoding="utf-8"
    )
    schema_file = tmp_path / "schema.json"
    schema_file.write_text(json.dumps(schema.model_dump()), encoding="utf-8")
    monkeypatch.setattr(config, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(config, "DATA_DIR", str(data_dir))
    monkeypatch.setattr(config, "SURVEY_SCHEMA", str(schema_file))

    with TestClient(app):
        cached = app.state.survey_service.cache.get()

    assert cached is not None
    assert cached.count == 1
