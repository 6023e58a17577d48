"""Prompt Formatting — builds AI assistant prompts and parses model output.

Invariants:
    - All functions are PURE: no IO, no async
    - Response texts are passed in submission order
    - extract_json accepts bare JSON, fenced ```json blocks, or JSON embedded in prose;
      it returns None rather than raising on unparseable text
"""

import json
import re

from survey_engine.core.domain_types import SurveyAggregate

RESPONSE_SEPARATOR = "\n---\n"

SUMMARY_SYSTEM = (
    "You summarize open-ended survey responses for the survey's creator. "
    "Be faithful to what respondents wrote; do not invent opinions."
)

VALIDATION_SYSTEM = (
    "You check survey responses against the survey guidelines. "
    "Answer with JSON only."
)

SEARCH_SYSTEM = (
    "You match a natural-language query to a catalogue of surveys. "
    "Answer with JSON only."
)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def build_summary_prompt(survey: SurveyAggregate) -> str:
    instructions = survey.summary_instructions or survey.guidelines or "N/A"
    responses = RESPONSE_SEPARATOR.join(r.text for r in survey.responses)
    return (
        f"Survey area: {survey.area or 'N/A'}\n"
        f"Survey question: {survey.question or 'N/A'}\n"
        f"Summary instructions: {instructions}\n\n"
        f"Responses (separated by ---):\n{responses}\n\n"
        "Write a concise summary of the responses."
    )


def build_validation_prompt(survey: SurveyAggregate) -> str:
    numbered = "\n".join(
        f"{i}. {r.text}" for i, r in enumerate(survey.responses)
    )
    return (
        f"Guidelines: {survey.guidelines or 'N/A'}\n\n"
        f"Responses:\n{numbered}\n\n"
        'Return a JSON array with one object per response: '
        '{"index": <int>, "is_valid": <bool>, "feedback": <string>}.'
    )


def build_search_prompt(query: str, surveys: list[SurveyAggregate]) -> str:
    catalogue = json.dumps(
        [
            {
                "id": str(s.id),
                "title": s.title,
                "area": s.area,
                "question": s.question,
                "guidelines": s.guidelines,
            }
            for s in surveys
        ],
        ensure_ascii=False,
    )
    return (
        f"Query: {query}\n\n"
        f"Surveys:\n{catalogue}\n\n"
        'Return a JSON array of the matching survey ids, best match first, '
        'e.g. ["<id>", "<id>"]. Return [] when nothing matches.'
    )


def extract_json(text: str):
    """Parse the first JSON value found in model output, or None."""
    if not text:
        return None
    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.insert(0, fenced.group(1).strip())
    for opener, closer in (("[", "]"), ("{", "}")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start:end + 1])
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def parse_validation_results(text: str, survey: SurveyAggregate) -> list[dict]:
    """Map the model's per-index verdicts back onto response ids."""
    parsed = extract_json(text)
    if not isinstance(parsed, list):
        return []
    results = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        index = item.get("index")
        if not isinstance(index, int) or not 0 <= index < len(survey.responses):
            continue
        results.append({
            "response_id": str(survey.responses[index].id),
            "is_valid": bool(item.get("is_valid")),
            "feedback": str(item.get("feedback", "")),
        })
    return results


def parse_search_results(text: str, known_ids: set[str]) -> list[str]:
    """Ordered, de-duplicated ids the model returned that actually exist."""
    parsed = extract_json(text)
    if not isinstance(parsed, list):
        return []
    seen: list[str] = []
    for value in parsed:
        survey_id = str(value)
        if survey_id in known_ids and survey_id not in seen:
            seen.append(survey_id)
    return seen
