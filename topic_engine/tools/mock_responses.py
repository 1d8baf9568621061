"""
Mock LLM responses for testing and development.

Provides deterministic responses based on prompt content.
Designed to work with pydantic-ai's FunctionModel.
"""

import hashlib
import json
import logging
import re
from typing import Any

from pydantic_ai.messages import ModelResponse, TextPart

logger = logging.getLogger(__name__)

_SUPPORT_CUES = ("support", "agree", "great", "love", "finally", "good idea", "in favor", "yes to", "approve")
_OPPOSE_CUES = ("oppose", "against", "terrible", "hate", "waste", "bad idea", "no to", "reject", "disagree")

_MOCK_TITLES = [
    "Public Transit Expansion",
    "School Funding Debate",
    "Downtown Housing Plan",
    "Park Renovation Proposal",
    "Local Tax Measure",
]


def _post_text(prompt: str) -> str:
    """Text after the 'Post:' marker of a stance prompt."""
    match = re.search(r'Post:\s*"?(.*)', prompt, re.DOTALL)
    return (match.group(1) if match else prompt).lower()


def mock_stance(prompt: str) -> str:
    """Cue-word stance: oppose cues win over support cues, otherwise neutral."""
    text = _post_text(prompt)
    if any(cue in text for cue in _OPPOSE_CUES):
        return "oppose"
    if any(cue in text for cue in _SUPPORT_CUES):
        return "support"
    return "neutral"


def get_mock_response(prompt: str, json_mode: bool = False) -> str:
    """Return mock response for testing.

    Args:
        prompt: The user prompt text.
        json_mode: Whether JSON output is expected.

    Returns:
        Deterministic mock response string.
    """
    prompt_hash = int(hashlib.md5(prompt.encode()).hexdigest()[:8], 16) % len(_MOCK_TITLES)
    prompt_lower = prompt.lower()

    if "analyze the stance" in prompt_lower:
        return mock_stance(prompt)

    if json_mode or "json" in prompt_lower:
        title = _MOCK_TITLES[prompt_hash]
        return json.dumps({
            "title": title,
            "summary": f"Residents are debating the {title.lower()}.",
            "support_summary": "Supporters say it brings long-term benefits to the community",
            "oppose_summary": "Critics argue the costs outweigh the benefits",
            "prevailing_position": "Most participants back the proposal",
            "leading_critique": "Concerns about cost overruns",
            "category": "civic",
            "keywords": title.lower().split(),
        })

    if "title:" in prompt_lower:
        title = _MOCK_TITLES[prompt_hash]
        return (
            f"TITLE: {title}\n"
            "SUPPORT: Supporters say it brings long-term benefits\n"
            "OPPOSE: Critics argue the costs outweigh the benefits"
        )

    return "Mock LLM response for testing purposes."


def get_mock_response_for_function_model(messages: list[Any], info: Any) -> ModelResponse:
    """Adapter for pydantic-ai FunctionModel.

    FunctionModel passes ModelMessage objects. We extract the user prompt
    text and delegate to get_mock_response.
    """
    prompt = ""
    system_prompt = ""
    for msg in messages:
        if hasattr(msg, 'parts'):
            for part in msg.parts:
                if not hasattr(part, 'content') or not isinstance(part.content, str):
                    continue
                part_type = type(part).__name__
                if "User" in part_type:
                    prompt = part.content
                elif "System" in part_type:
                    system_prompt = part.content
                elif not prompt:
                    prompt = part.content
    if not prompt and messages:
        prompt = str(messages[-1])

    json_mode = "json" in (prompt + " " + system_prompt).lower()
    text = get_mock_response(prompt, json_mode)
    return ModelResponse(parts=[TextPart(content=text)])
