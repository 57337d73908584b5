"""Decision primitives built on structured inference.

Each primitive wraps the caller's system prompt and conversation with a fixed
instruction turn, asks for a fixed-shape JSON object, and returns a validated
model. Errors from the inference layer propagate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, create_model

from structura.errors import ConfigurationError
from structura.inference import infer_structured
from structura.options import InferenceOptions
from structura.types import Message

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from structura.gateway import ChatGateway

YES_OR_NO_MODELS: tuple[str, ...] = ("google/gemini-3-flash-preview",)
MULTIPLE_CHOICE_MODELS: tuple[str, ...] = ("google/gemini-2.5-flash",)
QUALITY_MODELS: tuple[str, ...] = ("google/gemini-3-flash-preview",)


class YesOrNo(BaseModel):
    """A yes/no decision with rationale and confidence."""

    answer: bool
    rationale: str
    confidence: float = Field(ge=0, le=1)


class MultipleChoice(BaseModel):
    """A choice among caller-supplied options.

    ``answer`` is always one of the caller's choices in its original casing.
    """

    answer: str
    rationale: str
    confidence: float = Field(ge=0, le=1)


class QualityAssessment(BaseModel):
    """Overall and per-dimension quality scores on a 0-100 scale."""

    score: float = Field(ge=0, le=100)
    rationale: str
    accuracy_score: float = Field(ge=0, le=100)
    clarity_score: float = Field(ge=0, le=100)
    actionability_score: float = Field(ge=0, le=100)


YES_OR_NO_PROMPT = """Please respond with a JSON object containing:
- "answer": true or false, corresponding to "yes" and "no"
- "rationale": your reasoning for this decision
- "confidence": a number between 0 and 1 indicating how confident you are"""

MULTIPLE_CHOICE_PROMPT = """Please respond with a JSON object containing:
- "answer": one of the choices, which MUST be one of the choices provided
- "rationale": your reasoning for this decision
- "confidence": a number between 0 and 1 indicating how confident you are

The choices are:
{choices}"""

QUALITY_ASSESSMENT_PROMPT = """Please respond with a JSON object containing:
- "score": overall quality score from 0-100 (weighted average of the three dimensions)
- "rationale": brief explanation of the overall quality assessment
- "accuracy_score": 0-100 score for technical accuracy and correctness
- "clarity_score": 0-100 score for clarity, readability, and organization
- "actionability_score": 0-100 score for practical usefulness and implementability

Scoring guidelines:
- 90-100: Exceptional - highly accurate, crystal clear, immediately actionable
- 70-89: Good - accurate and useful with minor improvements possible
- 50-69: Fair - has value but needs significant improvement
- 30-49: Poor - major issues with accuracy, clarity, or usefulness
- 0-29: Very Poor - misleading, unclear, or not actionable"""


def _decision_prompt(
    base_prompt: str,
    conversation: Iterable[Message | dict[str, Any]],
    instruction: str,
) -> list[Message | dict[str, Any]]:
    return [Message.system(base_prompt), *conversation, Message.user(instruction)]


def _casings(choice: str) -> tuple[str, ...]:
    return (
        choice,
        choice.lower(),
        choice.upper(),
        choice[:1].upper() + choice[1:].lower(),
    )


def choice_variants(choices: Sequence[str]) -> tuple[str, ...]:
    """Return every casing variant of every choice, de-duplicated in order.

    Variants are the original, lowercase, uppercase and capitalized forms.
    """
    seen: dict[str, None] = {}
    for choice in choices:
        for variant in _casings(choice):
            seen.setdefault(variant, None)
    return tuple(seen)


def multiple_choice_schema(choices: Sequence[str]) -> type[MultipleChoice]:
    """Build a response model whose ``answer`` is closed over *choices*."""
    answer_type: Any = Literal[choice_variants(choices)]  # type: ignore[valid-type]
    return create_model(
        "MultipleChoiceResponse",
        __base__=MultipleChoice,
        answer=(answer_type, ...),
    )


def normalize_choice(answer: str, choices: Sequence[str]) -> str:
    """Map *answer* back to the matching choice's original casing.

    Casings produced by :func:`choice_variants` always map back, including
    ones that change length such as ``"Straße"`` -> ``"STRASSE"``. Other
    answers are matched by ``casefold()`` and returned unchanged when nothing
    matches.
    """
    for choice in choices:
        if answer in _casings(choice):
            return choice
    folded = answer.casefold()
    for choice in choices:
        if choice.casefold() == folded:
            return choice
    return answer


async def yes_or_no(
    base_prompt: str,
    conversation: Iterable[Message | dict[str, Any]],
    *,
    gateway: ChatGateway | None = None,
    models: Sequence[str] = YES_OR_NO_MODELS,
) -> YesOrNo:
    """Ask the model a yes/no question about the conversation."""
    return await infer_structured(
        _decision_prompt(base_prompt, conversation, YES_OR_NO_PROMPT),
        YesOrNo,
        options=InferenceOptions(models=tuple(models)),
        gateway=gateway,
    )


async def multiple_choice(
    base_prompt: str,
    conversation: Iterable[Message | dict[str, Any]],
    choices: Sequence[str],
    *,
    gateway: ChatGateway | None = None,
    models: Sequence[str] = MULTIPLE_CHOICE_MODELS,
) -> MultipleChoice:
    """Ask the model to pick one of *choices*.

    The model may answer in any casing of a choice; the returned ``answer`` is
    the caller's original spelling.

    Raises:
        ConfigurationError: If *choices* is empty or holds non-strings.
    """
    choices = list(choices)
    if not choices:
        raise ConfigurationError(
            "choices must contain at least one option",
            hint="Pass choices=['Yes', 'No'] or similar.",
        )
    if not all(isinstance(choice, str) for choice in choices):
        raise ConfigurationError("choices must be strings")

    schema = multiple_choice_schema(choices)
    instruction = MULTIPLE_CHOICE_PROMPT.format(choices="\n".join(choices))
    response = await infer_structured(
        _decision_prompt(base_prompt, conversation, instruction),
        schema,
        options=InferenceOptions(models=tuple(models)),
        gateway=gateway,
    )
    return MultipleChoice(
        answer=normalize_choice(response.answer, choices),
        rationale=response.rationale,
        confidence=response.confidence,
    )


async def quality_assessment(
    base_prompt: str,
    conversation: Iterable[Message | dict[str, Any]],
    *,
    gateway: ChatGateway | None = None,
    models: Sequence[str] = QUALITY_MODELS,
) -> QualityAssessment:
    """Score content on accuracy, clarity and actionability."""
    return await infer_structured(
        _decision_prompt(base_prompt, conversation, QUALITY_ASSESSMENT_PROMPT),
        QualityAssessment,
        options=InferenceOptions(models=tuple(models)),
        gateway=gateway,
    )
