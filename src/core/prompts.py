# src/core/prompts.py
"""
Prompt templates for the three model calls made by the backend.
"""

from typing import List

VISION_PROMPT = (
    "Identify all unique board game titles visible in this image. "
    "List them as a comma-separated string, e.g., 'Catan, Ticket to Ride, Splendor'. "
    "If no board games are identified, respond with 'None'."
)

CANONICALIZATION_PROMPT = """Given the following list of potential board game titles: {names}.
Please verify which of these are actual, real board game titles. For each real game, provide its most common, canonical name.
Format your response as a JSON array of objects, like this:
[{{"gameName": "Canonical Game Name"}}, {{"gameName": "Another Canonical Game Name"}}]
Do not include any games that are not real board games."""

# Gemini structured-output schema for the canonicalization call
CANONICALIZATION_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "gameName": {"type": "STRING"},
        },
        "required": ["gameName"],
    },
}

FORMATTING_RULES = """Keep your response brief and do not ask follow-up or clarifying questions.
Please format your suggestions using Markdown, including bolding for game titles,
bullet points for lists, and brief descriptions for each game."""

GENERAL_RECOMMENDATION_PROMPT = """You are a board game expert.
No specific games were identified from the image, so please acknowledge that no games were identified
and provide general recommendations.
Suggest board games suitable for {player_count} players with a playing time of {playing_time}.
Provide a concise, bulleted list of recommended games, including a brief description for each.
{formatting}"""

FILTERED_RECOMMENDATION_PROMPT = """You are a board game expert.
The user has the following board games in their collection: {names}.
They are looking for games for {player_count} players with a playing time of {playing_time}.
Based on your knowledge of board games, recommend only the games in their collection that are best suited
for {player_count} players and {playing_time}.
{formatting}"""


def build_canonicalization_prompt(raw_names: List[str]) -> str:
    return CANONICALIZATION_PROMPT.format(names=", ".join(raw_names))


def build_recommendation_prompt(game_names: List[str], player_count: str, playing_time: str) -> str:
    """
    Picks the general template when nothing was identified, otherwise the
    template restricted to the user's own collection.
    """
    if not game_names:
        return GENERAL_RECOMMENDATION_PROMPT.format(
            player_count=player_count,
            playing_time=playing_time,
            formatting=FORMATTING_RULES,
        )
    return FILTERED_RECOMMENDATION_PROMPT.format(
        names=", ".join(game_names),
        player_count=player_count,
        playing_time=playing_time,
        formatting=FORMATTING_RULES,
    )
