"""Prompt templates for rubric generation and option scoring."""

from convotree.models import Role, Turn
from convotree.providers.base import ChatMessage

SCORE_REQUEST = (
    "Based on your analysis, provide a score from 0-100. "
    'Return ONLY a JSON object with format: {"score": <number>}'
)


def evaluation_prompt(context_turns: list[Turn], role: Role) -> str:
    conversation = "\n\n".join(f"{t.role.value}: {t.content}" for t in context_turns)
    return (
        f"Given this conversation context:\n\n{conversation}\n\n"
        f"Evaluate the following {role.value} responses."
    )


def eval_criteria_messages(input_prompt: str) -> list[ChatMessage]:
    content = f"""
Your task is to create an evaluation criteria or a rubric that grades a response based on an input prompt.
The criteria will be used to grade a response on a scale of 0-100. You should be a very harsh grader. You should focus on what they did wrong.

**The evaluation criteria is based on how well a response could answer the input prompt**

Input prompt:
{input_prompt}

Evaluation Criteria (Rubric) for how well a response could answer the input prompt:
"""
    return [ChatMessage(role="user", content=content)]


def eval_steps_messages(input_prompt: str, eval_criteria: str) -> list[ChatMessage]:
    content = f"""
Your task is to create guiding steps in evaluating responses based on input prompt.
You are to use the input prompt, and evaluation criteria to create these steps.
**The evaluation criteria is based on how well a response could answer the input prompt**

Input prompt:
{input_prompt}

Evaluation Criteria for a response:
{eval_criteria}

Evaluation Steps:"""
    return [ChatMessage(role="user", content=content)]


def format_rubric(criteria: str, steps: str) -> str:
    return f"Evaluation Criteria:\n{criteria}\n\nEvaluation Steps:\n{steps}\n"


def system_analysis_prompt(rubric: str) -> str:
    return f"""Your task is to analyze an input text using a rubric.
You will receive a rubric to guide you. You must use the rubric.
The rubric contains a criteria and steps you can use to evaluate the criteria.
You are to be a harsh grader. Prioritize accuracy, logical consistency, clarity, understandability in your analysis.

Please make sure you read and understand these instructions carefully. Please keep this document open while reviewing, and refer to it as needed.

Rubric:
{rubric}
"""
