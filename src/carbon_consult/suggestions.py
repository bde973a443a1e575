import json
import os
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from openai import OpenAI

from .constants import OPENAI_MODEL, OPENAI_TEMPERATURE, REPORT_DECIMALS, SUGGESTION_LANGUAGE
from .models import Category, EmissionResult
from .utils.calculations import format_emissions

load_dotenv()

logger = logging.getLogger(__name__)

# Payload key for each category total
SUMMARY_KEYS = {
    Category.MATERIALS: "materialEmissions",
    Category.MANUFACTURING: "manufacturingEmissions",
    Category.IMPLEMENTATION: "implementationEmissions",
    Category.TRANSPORT: "transportEmissions",
    Category.END_OF_LIFE: "endOfLifeEmissions",
}

SYSTEM_PROMPT = """
You are an expert in carbon footprint analysis for construction and manufacturing projects.
Analyse the carbon emission data of a supply-chain offer and give a concise assessment
and actionable recommendations for improvement.

Write the analysis in {language}.

Return ONLY valid JSON with this shape:
{{
  "assessment": "<one or two sentences identifying the main emission hotspots>",
  "recommendations": ["<3 to 5 specific, actionable recommendations>"]
}}

Focus on the areas with the highest impact: alternative materials, lower-carbon
concrete mixes or recycled rebar, different transport modes, process optimisations,
end-of-life routes that earn recycling credits.
"""


@dataclass
class SuggestionRequest:
    """
    Structured input for the suggestion service.
    - summary: totalEmissions + one *Emissions key per category (kgCO2e)
    - details: per category key, "<name>: <co2e> kgCO2e" strings
    - comments: free-text user assumptions
    """
    summary: Dict[str, float]
    details: Dict[str, List[str]]
    comments: str = ""

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"summary": dict(self.summary), "details": dict(self.details)}
        if self.comments:
            payload["comments"] = self.comments
        return payload


@dataclass
class SuggestionResult:
    success: bool
    assessment: str = ""
    recommendations: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def as_text(self) -> str:
        if not self.success:
            return self.error or "Suggestion request failed."
        lines = [self.assessment, ""]
        lines += [f"{i}. {rec}" for i, rec in enumerate(self.recommendations, 1)]
        return "\n".join(lines).strip()


def build_suggestion_request(result: EmissionResult, comments: str = "") -> SuggestionRequest:
    summary = {"totalEmissions": result.grand_total}
    for category, key in SUMMARY_KEYS.items():
        summary[key] = result.total(category)

    details = {
        category.key: [f"{d.name}: {format_emissions(d.co2e, REPORT_DECIMALS)} kgCO2e" for d in result.details.get(category, [])]
        for category in Category
    }
    return SuggestionRequest(summary=summary, details=details, comments=(comments or "").strip())


def _make_client() -> OpenAI:
    return OpenAI(api_key=os.getenv("OPENAI_API_KEY"))


def parse_suggestion_response(text: str) -> SuggestionResult:
    """Validate the model's JSON answer; malformed answers become a failure result."""
    # Remove markdown fences the model sometimes adds
    text = re.sub(r"^```(?:json)?\s*|\s*```$", "", (text or "").strip(), flags=re.DOTALL).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return SuggestionResult(success=False, error=f"Malformed suggestion response: {e}")

    if not isinstance(data, dict):
        return SuggestionResult(success=False, error="Malformed suggestion response: expected a JSON object")

    assessment = data.get("assessment")
    recommendations = data.get("recommendations")
    if not isinstance(assessment, str) or not isinstance(recommendations, list):
        return SuggestionResult(
            success=False,
            error="Malformed suggestion response: 'assessment' or 'recommendations' missing",
        )

    return SuggestionResult(
        success=True,
        assessment=assessment.strip(),
        recommendations=[str(r).strip() for r in recommendations if str(r).strip()],
    )


def suggest_improvements(
    request: SuggestionRequest,
    client: Optional[Any] = None,
    model: str = OPENAI_MODEL,
) -> SuggestionResult:
    """
    Forward one request to the text-generation service.
    No retry, no caching: any failure is returned once as success=False.
    """
    try:
        client = client or _make_client()
        response = client.chat.completions.create(
            model=model,
            temperature=OPENAI_TEMPERATURE,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT.format(language=SUGGESTION_LANGUAGE)},
                {"role": "user", "content": json.dumps(request.to_payload(), ensure_ascii=False)},
            ],
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
    except Exception as e:
        logger.error(f"Suggestion service error: {e}")
        return SuggestionResult(success=False, error=f"Suggestion service unavailable: {e}")

    result = parse_suggestion_response(content)
    if not result.success:
        logger.error(result.error)
    else:
        logger.info(f"Received {len(result.recommendations)} recommendations")
    return result
