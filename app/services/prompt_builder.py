"""Prompt synthesis and result extraction for the description generator."""

from typing import Any, Dict

from app.api.descriptions.schemas import GenerationRequest

NO_DESCRIPTION_TEXT = "No description generated."


def build_prompt(request: GenerationRequest) -> str:
    """Turn the form input into the prompt sent to Gemini."""
    return (
        f"Generate a {request.description_length.value} product description for "
        f"\"{request.product_name}\". Key features: {request.key_features}. "
        f"Target audience: {request.target_audience}."
    )


def extract_generated_text(result: Dict[str, Any]) -> str:
    """First text part of the first candidate, or a placeholder."""
    candidates = result.get("candidates") or []
    if not candidates:
        return NO_DESCRIPTION_TEXT
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts or not parts[0].get("text"):
        return NO_DESCRIPTION_TEXT
    return parts[0]["text"]
