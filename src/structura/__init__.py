"""Structura: schema-validated results from unreliable LLM providers.

Public API:
    - infer_structured(): Completion coerced into a Pydantic model, with retries
    - infer_raw(): Single free-form completion
    - yes_or_no(), multiple_choice(), quality_assessment(): Decision primitives
    - Message: Conversation turn
    - InferenceOptions / Config: Per-call options and provider configuration
"""

from __future__ import annotations

import logging

from structura.config import Config
from structura.decisions import (
    MultipleChoice,
    QualityAssessment,
    YesOrNo,
    multiple_choice,
    quality_assessment,
    yes_or_no,
)
from structura.errors import (
    ConfigurationError,
    InferenceExhaustedError,
    MissingCredentialError,
    ModelNotAllowedError,
    ProviderError,
    RateLimitError,
    StructuraError,
    StructuredOutputError,
)
from structura.gateway import ChatGateway, OpenRouterGateway
from structura.inference import infer_raw, infer_structured
from structura.options import InferenceOptions
from structura.types import ImageSegment, Message, ResponseMessage, TextSegment

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("structura")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("structura").addHandler(logging.NullHandler())

__all__ = [
    "ChatGateway",
    "Config",
    "ConfigurationError",
    "ImageSegment",
    "InferenceExhaustedError",
    "InferenceOptions",
    "Message",
    "MissingCredentialError",
    "ModelNotAllowedError",
    "MultipleChoice",
    "OpenRouterGateway",
    "ProviderError",
    "QualityAssessment",
    "RateLimitError",
    "ResponseMessage",
    "StructuraError",
    "StructuredOutputError",
    "TextSegment",
    "YesOrNo",
    "infer_raw",
    "infer_structured",
    "multiple_choice",
    "quality_assessment",
    "yes_or_no",
]
