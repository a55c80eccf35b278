"""LLM integration module for codelens.

Provides the LiteLLM client wrapper, the analysis prompt builder, and the
response normalizer that turns model text into a validated AnalysisResult.

Temperature is fixed at 0 so identical prompts produce stable results.
"""

from codelens.llm.client import (
    AuthError,
    EmptyResponseError,
    LLMClient,
    LLMError,
    LLMResponse,
    ProviderTerminalError,
    ProviderTransientError,
    RateLimitError,
    classify_failure,
    create_client,
)
from codelens.llm.normalizer import normalize, parse_error_result, provider_error_result
from codelens.llm.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from codelens.models.llm_config import VALID_PROVIDERS, LLMConfig

__all__ = [
    "ANALYSIS_SYSTEM_PROMPT",
    "AuthError",
    "EmptyResponseError",
    "LLMClient",
    "LLMConfig",
    "LLMError",
    "LLMResponse",
    "ProviderTerminalError",
    "ProviderTransientError",
    "RateLimitError",
    "VALID_PROVIDERS",
    "build_analysis_prompt",
    "classify_failure",
    "create_client",
    "normalize",
    "parse_error_result",
    "provider_error_result",
]
