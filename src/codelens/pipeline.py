"""Single-file analysis pipeline.

Coordinates one analysis from submitted source to validated result:

1. Validate input (empty or oversized source is rejected before any call)
2. Classify the language from the filename
3. Cache lookup
4. Build the prompt and call the provider
5. Normalize the response
6. Cache store and capacity eviction

Provider failures become degraded results; only InputError escapes.
"""

import logging
import time

from codelens.cache import AnalysisCache, make_cache_key
from codelens.errors import InputError
from codelens.language import classify
from codelens.llm.client import LLMClient, LLMError
from codelens.llm.normalizer import normalize, provider_error_result
from codelens.llm.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from codelens.models.result import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 500_000


class AnalysisPipeline:
    """Runs the analysis of one source file.

    Safe to share between callers: the only shared state is the cache,
    which serializes its own mutations.
    """

    def __init__(
        self,
        client: LLMClient,
        cache: AnalysisCache,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        """Initialize the pipeline.

        Args:
            client: LLM client used for generation
            cache: Result cache shared across requests
            max_file_size: Maximum source size in UTF-8 bytes
        """
        self.client = client
        self.cache = cache
        self.max_file_size = max_file_size

    def validate_request(self, source_text: str, filename: str) -> None:
        """Reject input that must never reach the provider.

        Raises:
            InputError: If the filename is missing, the source is empty or
                whitespace-only, or its UTF-8 size exceeds max_file_size
        """
        if not filename or not filename.strip():
            raise InputError("Filename is required")

        if not source_text or not source_text.strip():
            raise InputError(f"No code provided for {filename}")

        size = len(source_text.encode("utf-8"))
        if size > self.max_file_size:
            raise InputError(
                f"File too large: {filename} is {size} bytes "
                f"(maximum {self.max_file_size} bytes)"
            )

    def analyze_one(self, source_text: str, filename: str) -> AnalysisResult:
        """Analyze one source file.

        Args:
            source_text: Full source text
            filename: File name used for language detection and the cache key

        Returns:
            Validated AnalysisResult (degraded on provider or parse failure)

        Raises:
            InputError: If the request is rejected by validate_request
        """
        self.validate_request(source_text, filename)

        language = classify(filename).language
        key = make_cache_key(filename, source_text)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for %s (%s)", filename, key)
            return cached

        logger.info("Analyzing %s as %s", filename, language)
        prompt = build_analysis_prompt(source_text, filename, language)

        start = time.perf_counter()
        try:
            response = self.client.complete(prompt, system_prompt=ANALYSIS_SYSTEM_PROMPT)
        except LLMError as e:
            logger.warning("Analysis of %s failed: %s", filename, e)
            return provider_error_result(e, filename, language)

        elapsed = time.perf_counter() - start
        logger.debug(
            "Generation for %s took %.2fs (%d attempt(s))",
            filename,
            elapsed,
            response.attempts,
        )

        result = normalize(response.content, source_text, filename, language)

        if result.degraded:
            logger.debug("Not caching degraded result for %s", filename)
        else:
            self.cache.put(key, result, filename=filename, language=language)
            self.cache.evict_over_capacity()

        logger.info(
            "Analysis of %s complete: %d errors, %d suggestions",
            filename,
            result.summary.total_errors,
            result.summary.warnings,
        )
        return result
