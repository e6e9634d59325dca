"""Prompt templates for fact-check evidence search and response drafting."""

from repushield.data_management.schemas import Evidence

FACT_CHECK_QUERY_TEMPLATE = 'fact check: "{content}" about {entity_name}'

NO_EVIDENCE_TEXT = "No evidence found from web search."

RESPONSE_DRAFT_PROMPT = '''You are a professional social media admin managing the reputation of {entity_name}.
A high-risk post has been flagged that requires a response.

Post Content: "{content}"

Evidence from Web Search:
{evidence_text}

Your task:
1. Analyze the post content and the evidence gathered
2. Write a professional, tweet-ready admin response (maximum 280 characters)
3. Include key evidence or facts if relevant
4. If the post contains false information, gently correct it with evidence
5. If the post is accurate, acknowledge it professionally

Respond in JSON:
{{
    "response_text": "<tweet-ready response, max 280 characters>",
    "tone": "professional" | "conciliatory" | "factual" | "defensive",
    "key_points": ["point1", "point2", "point3"]
}}'''


def build_fact_check_query(content: str, entity_name: str) -> str:
    return FACT_CHECK_QUERY_TEMPLATE.format(content=content, entity_name=entity_name)


def format_evidence(evidence: Evidence) -> str:
    if not evidence.sources:
        return NO_EVIDENCE_TEXT
    return "\n".join(
        f"{i}. {source.title}: {source.snippet} ({source.url})"
        for i, source in enumerate(evidence.sources, start=1)
    )


def build_response_prompt(entity_name: str, content: str, evidence: Evidence) -> str:
    return RESPONSE_DRAFT_PROMPT.format(
        entity_name=entity_name,
        content=content,
        evidence_text=format_evidence(evidence),
    )
