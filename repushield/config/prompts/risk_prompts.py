"""Prompt templates for reputational risk classification.

The classifier returns one JSON object per mention. Only the output contract
matters to the pipeline: RiskScoreResult.sanitize() clamps and truncates
whatever comes back.
"""

RISK_CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a social media post / news analyst who reads posts and extracts "
    "context, meaning and intelligence from them. Always respond in valid JSON."
)

RISK_CLASSIFICATION_PROMPT = '''{system_prompt}

Read the content below with respect to the entity {entity_name} and extract:
1. Topics - the three main topics of the post
2. Keywords - the three main hashtags / keywords of the post
3. Sentiment - positive, negative or neutral
4. Risk Score - reputational risk for the entity out of 10, 10 being the highest
5. Crisp Summary - a crisp 5 word summary of the post

Post Content: "{content}"

Respond in JSON with exactly these fields:
{{
    "topics": ["topic1", "topic2", "topic3"],
    "keywords": ["keyword1", "keyword2", "keyword3"],
    "sentiment": "positive" | "neutral" | "negative",
    "riskScore": <number 1-10>,
    "crispSummary": "<exactly 5 words>"
}}'''


def build_risk_prompt(content: str, entity_name: str) -> str:
    return RISK_CLASSIFICATION_PROMPT.format(
        system_prompt=RISK_CLASSIFICATION_SYSTEM_PROMPT,
        entity_name=entity_name,
        content=content,
    )
