import json
import threading
from types import SimpleNamespace

import pytest
import requests

from carbon_consult.models import Category, LineItems, MaterialItem, ProcessItem, TransportItem
from carbon_consult.factors import default_factor_table
from carbon_consult.importer import ReportImportError
from carbon_consult.session import CarbonSession
from carbon_consult.submission import (
    HttpSubmissionStore, JsonFileSubmissionStore, SubmissionResult, SubmissionStore,
    build_submission_payload
)

FACTORS = default_factor_table()


class ScriptedClient:
    """Returns one scripted answer per call; the first call waits for `release`."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.release = threading.Event()
        self.started = threading.Event()
        self.lock = threading.Lock()
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        with self.lock:
            content = self.answers.pop(0)
            first = not self.started.is_set()
            self.started.set()
        if first:
            self.release.wait(timeout=5)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FailingStore(SubmissionStore):
    def save(self, payload):
        return SubmissionResult(success=False, message="Database unavailable")


def answer(text):
    return json.dumps({"assessment": text, "recommendations": [text]})


@pytest.fixture
def session(tmp_path):
    s = CarbonSession(factors=FACTORS, store=JsonFileSubmissionStore(str(tmp_path / "submissions")))
    yield s
    s.close()


def test_editing_and_calculation(session):
    session.add_item(Category.MATERIALS, MaterialItem(material_name="Glass", quantity=10))
    session.add_item(Category.MANUFACTURING, ProcessItem(process_name="Welding", duration_hours=2))
    assert session.calculate().grand_total == pytest.approx(24.0)

    with pytest.raises(TypeError):
        session.add_item(Category.TRANSPORT, MaterialItem(material_name="Glass", quantity=1))

    removed = session.remove_item(Category.MATERIALS, 0)
    assert removed.material_name == "Glass"
    assert session.calculate().grand_total == pytest.approx(15.0)


def test_import_replaces_items_and_keeps_comments(session, tmp_path):
    session.add_item(Category.TRANSPORT, TransportItem(mode_name="Rail", distance_km=100, weight_tonnes=1))
    session.comments = "Assumes delivery by rail"
    path = session.export(str(tmp_path / "report.xlsx"))

    session.replace_items(LineItems(materials=[MaterialItem(material_name="Glass", quantity=1)]))
    session.import_file(path)

    assert [t.mode_name for t in session.items.transport] == ["Rail"]
    assert session.items.materials == []
    assert session.comments == "Assumes delivery by rail"


def test_failed_import_leaves_items_untouched(session, tmp_path):
    session.add_item(Category.MATERIALS, MaterialItem(material_name="Glass", quantity=5))
    bad = tmp_path / "bad.csv"
    bad.write_text("Foo,Bar\n1,2\n")

    with pytest.raises(ReportImportError):
        session.import_file(str(bad))
    assert [m.material_name for m in session.items.materials] == ["Glass"]


def test_latest_suggestion_wins(tmp_path):
    client = ScriptedClient([answer("first"), answer("second")])
    session = CarbonSession(factors=FACTORS, suggestion_client=client,
                            store=JsonFileSubmissionStore(str(tmp_path)))
    try:
        session.add_item(Category.MATERIALS, MaterialItem(material_name="Glass", quantity=10))
        first = session.request_suggestions()
        assert client.started.wait(timeout=5)
        second = session.request_suggestions()
        client.release.set()

        assert first.result(timeout=5).assessment == "first"
        assert second.result(timeout=5).assessment == "second"
        # The older request finished while a newer one was pending: it is discarded
        assert session.last_suggestion.assessment == "second"
    finally:
        session.close()


def test_suggestion_failure_keeps_session_usable(tmp_path):
    def boom(**kwargs):
        raise requests.ConnectionError("offline")

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=boom)))
    session = CarbonSession(factors=FACTORS, suggestion_client=client, store=JsonFileSubmissionStore(str(tmp_path)))
    try:
        session.add_item(Category.MATERIALS, MaterialItem(material_name="Glass", quantity=10))
        result = session.request_suggestions().result(timeout=5)
        assert not result.success
        assert session.last_suggestion is result
        assert session.calculate().grand_total == pytest.approx(9.0)
    finally:
        session.close()


def test_submit_to_json_store(session, tmp_path):
    session.add_item(Category.MATERIALS, MaterialItem(material_name="Steel (Virgin)", quantity=10))
    session.comments = "Draft offer"

    result = session.submit().result(timeout=5)
    assert result.success
    assert session.last_submission is result

    with open(result.message, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["comments"] == "Draft offer"
    assert saved["totals"]["grandTotal"] == pytest.approx(20.0)
    assert saved["lineItems"]["materials"][0]["material_name"] == "Steel (Virgin)"


def test_failed_submission_keeps_items(tmp_path):
    session = CarbonSession(factors=FACTORS, store=FailingStore())
    try:
        session.add_item(Category.MATERIALS, MaterialItem(material_name="Glass", quantity=3))
        result = session.submit().result(timeout=5)
        assert not result.success
        assert result.message == "Database unavailable"
        assert session.items.count() == 1
    finally:
        session.close()


def test_submission_payload_copies_concrete_kind():
    from carbon_consult.models import ConcreteItem

    items = LineItems(materials=[ConcreteItem(concrete_type_name="CEM I", quantity=1, cement_mass_per_volume=300)])
    payload = build_submission_payload(items, "", FACTORS)
    row = payload["lineItems"]["materials"][0]
    assert row["kind"] == "concrete"
    assert payload["totals"]["materials"] == pytest.approx(229.5)
    assert LineItems.from_dict(payload["lineItems"]).materials == items.materials


def test_http_store_reports_failures(monkeypatch):
    assert not HttpSubmissionStore(url="").save({}).success

    def offline(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr("carbon_consult.submission.requests.post", offline)
    result = HttpSubmissionStore(url="http://localhost:9/submissions", timeout=1).save({"a": 1})
    assert not result.success
    assert "connection refused" in result.message


def test_http_store_success(monkeypatch):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, timeout=timeout)
        return SimpleNamespace(status_code=201, raise_for_status=lambda: None)

    monkeypatch.setattr("carbon_consult.submission.requests.post", fake_post)
    result = HttpSubmissionStore(url="http://example.test/submit", timeout=3).save({"comments": "x"})
    assert result.success
    assert sent == {"url": "http://example.test/submit", "json": {"comments": "x"}, "timeout": 3}
