"""Prompt templates and the response contract for paper summarization."""

from learnfeed.llm.models import PARADIGM_KEYS


SYSTEM_INSTRUCTION = (
    "You are an expert research summarizer. Return ONLY strict JSON per instructions."
)

_SUMMARY_TEMPLATE = """Summarize the research paper below and classify it by paradigms.
Return strict JSON: {{"tldr": string, "paradigms": {{"training": 0-5, "agent_creation": 0-5, "safeguards": 0-5, "token_counting": 0-5, "prompting": 0-5}}, "meritScore": 0-100, "rationale": string}}.
Rules:
- TLDR: 2-3 sentences, 80-120 words, factual, no hype.
- Paradigms: integers 0-5 indicating relevance under each paradigm.
- MeritScore: judge novelty, rigor, and practical impact (0-100).
Paper:
Title: {title}"""

# Structured-output schema matching the JSON shape requested above. Gemini
# uses its OpenAPI subset, so type names are upper case.
SUMMARY_RESPONSE_SCHEMA: dict[str, object] = {
    "type": "OBJECT",
    "properties": {
        "tldr": {"type": "STRING"},
        "paradigms": {
            "type": "OBJECT",
            "properties": {key: {"type": "INTEGER"} for key in PARADIGM_KEYS},
            "required": list(PARADIGM_KEYS),
        },
        "meritScore": {"type": "INTEGER"},
        "rationale": {"type": "STRING"},
    },
    "required": ["tldr", "paradigms", "meritScore"],
}


def build_summary_prompt(
    title: str,
    abstract: str | None = None,
    url: str | None = None,
) -> str:
    """Build the summarization prompt for one paper.

    Args:
        title: Paper title.
        abstract: Paper abstract; omitted from the prompt when empty.
        url: Abstract page URL; omitted from the prompt when empty.

    Returns:
        Prompt text.
    """
    lines = [_SUMMARY_TEMPLATE.format(title=title)]
    if abstract:
        lines.append(f"Abstract: {abstract}")
    if url:
        lines.append(f"URL: {url}")
    return "\n".join(lines)
