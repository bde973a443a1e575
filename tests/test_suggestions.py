import json
from types import SimpleNamespace

from carbon_consult.models import LineItems, MaterialItem, TransportItem, EndOfLifeItem
from carbon_consult.factors import default_factor_table
from carbon_consult.utils.calculations import calculate_emissions
from carbon_consult.suggestions import (
    SuggestionRequest, build_suggestion_request, parse_suggestion_response, suggest_improvements
)

FACTORS = default_factor_table()


class FakeClient:
    """Mimics client.chat.completions.create(...) and records the call."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_request() -> SuggestionRequest:
    items = LineItems(
        materials=[MaterialItem(material_name="Steel (Virgin)", quantity=100)],
        transport=[TransportItem(mode_name="Air", distance_km=1000, weight_tonnes=2)],
        end_of_life=[EndOfLifeItem(method_name="Recycling (Metals)", weight_kg=50)],
    )
    return build_suggestion_request(calculate_emissions(items, FACTORS), comments="  Delivery to Lyon  ")


def test_request_payload_shape():
    payload = make_request().to_payload()

    assert set(payload["summary"]) == {
        "totalEmissions", "materialEmissions", "manufacturingEmissions",
        "implementationEmissions", "transportEmissions", "endOfLifeEmissions",
    }
    assert payload["summary"]["materialEmissions"] == 200.0
    assert payload["summary"]["transportEmissions"] == 1200.0
    assert payload["summary"]["endOfLifeEmissions"] == -90.0
    assert payload["summary"]["totalEmissions"] == 1310.0

    assert payload["details"]["materials"] == ["Steel (Virgin): 200.00 kgCO2e"]
    assert payload["details"]["transport"] == ["Air: 1200.00 kgCO2e"]
    # Credits never appear as details
    assert payload["details"]["endOfLife"] == []
    assert payload["comments"] == "Delivery to Lyon"


def test_comments_omitted_when_blank():
    request = SuggestionRequest(summary={"totalEmissions": 0.0}, details={})
    assert "comments" not in request.to_payload()


def test_suggest_improvements_success():
    answer = {
        "assessment": "Le transport aérien domine l'empreinte.",
        "recommendations": ["Passer au fret maritime", "Utiliser de l'acier recyclé", " "],
    }
    client = FakeClient(content=json.dumps(answer, ensure_ascii=False))
    result = suggest_improvements(make_request(), client=client)

    assert result.success
    assert result.assessment == answer["assessment"]
    assert result.recommendations == answer["recommendations"][:2]
    assert "1. Passer au fret maritime" in result.as_text()

    call = client.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    sent = json.loads(call["messages"][1]["content"])
    assert sent["summary"]["totalEmissions"] == 1310.0
    assert "French" in call["messages"][0]["content"]


def test_fenced_json_is_accepted():
    text = '```json\n{"assessment": "ok", "recommendations": ["a"]}\n```'
    result = parse_suggestion_response(text)
    assert result.success
    assert result.recommendations == ["a"]


def test_malformed_answers_fail_once():
    for text in ("not json", "[1, 2]", '{"assessment": "x"}', "", None):
        result = parse_suggestion_response(text)
        assert not result.success
        assert result.error.startswith("Malformed suggestion response")

    result = suggest_improvements(make_request(), client=FakeClient(content="{oops"))
    assert not result.success


def test_service_failure_is_reported_not_raised():
    client = FakeClient(error=RuntimeError("401 invalid api key"))
    result = suggest_improvements(make_request(), client=client)
    assert not result.success
    assert "Suggestion service unavailable" in result.error
    assert "401" in result.as_text()
    assert len(client.calls) == 1
