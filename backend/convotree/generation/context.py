"""Context assembly for LLM generation.

Turns collected from the tree become the provider message list. The list must
end with a user message: the system only ever generates assistant replies,
and a context ending on anything else means the branch is malformed.
"""

from convotree.models import Role, Turn
from convotree.providers.base import ChatMessage

# Models that only accept the default temperature.
FIXED_TEMPERATURE_PREFIXES = ("gpt-5",)


def normalized_temperature(model: str, temperature: float) -> float:
    if model.startswith(FIXED_TEMPERATURE_PREFIXES):
        return 1.0
    return temperature


def build_conversation_messages(turns: list[Turn]) -> list[ChatMessage]:
    return [
        ChatMessage(role=turn.role.value, content=turn.content)
        for turn in turns
        if turn.content
    ]


def build_generation_messages(
    turns: list[Turn], system_prompt: str = ""
) -> list[ChatMessage]:
    """Validate the conversation and prepend the system prompt if there is one.

    Raises InvalidContextError if there is nothing to reply to.
    """
    conversation = build_conversation_messages(turns)
    if not conversation:
        raise InvalidContextError("Cannot generate without a user prompt")
    if conversation[-1].role != Role.USER.value:
        raise InvalidContextError("Last turn before generation must be a user message")

    trimmed = system_prompt.strip()
    if trimmed:
        return [ChatMessage(role="system", content=trimmed), *conversation]
    return conversation


class InvalidContextError(Exception):
    pass
