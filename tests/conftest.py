import json

import pytest
from fastapi.testclient import TestClient

from app import config
from app.services.record_store import RecordStore
from app.services.schema import SurveySchema
from app.services.storage import LocalStorage
from app.services.survey import SurveyService

STATS_USER = "dashboard"
STATS_PASS = "s3cret"


@pytest.fixture
def schema():
    return SurveySchema(
        name="test-visit",
        gate_field="visited",
        eligible_value="yes",
        ineligible_value="no",
        required_fields=["gender", "age"],
        multi_value_fields=["channels"],
        scale_fields=["q1", "q2"],
        demographic_fields={"gender": "gender", "age": "age"},
        unanswered_label="unanswered",
    )


@pytest.fixture
def complete_payload():
    return {
        "visited": "yes",
        "gender": "female",
        "age": "18-25",
        "channels": ["friends", "social media"],
        "q1": 4,
        "q2": "5",
    }


@pytest.fixture
def store(tmp_path):
    return RecordStore(LocalStorage(base_dir=str(tmp_path)), "responses.json")


@pytest.fixture
def service(schema, store):
    return SurveyService(schema=schema, store=store)


@pytest.fixture
def client(tmp_path, schema, monkeypatch):
    """App client wired to a temp data dir and a schema loaded from a JSON file."""
    schema_file = tmp_path / "schema.json"
    schema_file.write_text(json.dumps(schema.model_dump()), encoding="utf-8")

    monkeypatch.setattr(config, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(config, "SURVEY_SCHEMA", str(schema_file))
    monkeypatch.setattr(config, "STATS_USERNAME", STATS_USER)
    monkeypatch.setattr(config, "STATS_PASSWORD", STATS_PASS)
    monkeypatch.setattr(config, "RECORD_CLIENT_IP", True)
    monkeypatch.setattr(config, "TRUST_PROXY_HEADERS", True)

    from app import main
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def auth():
    return (STATS_USER, STATS_PASS)
