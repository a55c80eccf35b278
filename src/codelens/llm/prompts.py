"""LLM prompt templates for code review.

Builds the single analysis prompt sent per file. The prompt embeds the exact
JSON shape the model must return; the normalizer repairs whatever still
deviates from it.

Prompt construction is pure: identical inputs produce byte-identical prompts,
which keeps cached results and provider-side prompt caching consistent.
"""

from dataclasses import dataclass

# =============================================================================
# System prompt
# =============================================================================

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert code reviewer. You report concrete, line-specific issues "
    "found in the code you are given and nothing else.\n"
    "Return ONLY a single JSON object. No markdown fences, no commentary before "
    "or after the object."
)

# =============================================================================
# Language context tables
# =============================================================================


@dataclass(frozen=True)
class LanguageContext:
    """Review hints for one language.

    Attributes:
        common_errors: Mistakes reviewers commonly find in this language
        frameworks: Frameworks and tools the code is likely to use
        modern_features: Idioms the review should expect
    """

    common_errors: tuple[str, ...]
    frameworks: tuple[str, ...]
    modern_features: tuple[str, ...]


DEFAULT_CONTEXT_KEY = "default"

LANGUAGE_CONTEXTS: dict[str, LanguageContext] = {
    "JavaScript": LanguageContext(
        common_errors=(
            "undefined variables",
            "type coercion issues",
            "async/await misuse",
            "closure problems",
        ),
        frameworks=("React", "Node.js", "Express"),
        modern_features=("ES6+ syntax", "modules", "destructuring", "arrow functions"),
    ),
    "TypeScript": LanguageContext(
        common_errors=(
            "type mismatches",
            "interface violations",
            "generic type issues",
            "strict mode violations",
        ),
        frameworks=("React", "Angular", "Node.js"),
        modern_features=("strict typing", "decorators", "enums", "utility types"),
    ),
    "Java": LanguageContext(
        common_errors=(
            "null pointer exceptions",
            "type mismatches",
            "static context issues",
            "access modifiers",
        ),
        frameworks=("Spring", "Hibernate", "Maven"),
        modern_features=("lambdas", "streams", "optional", "modules"),
    ),
    "Python": LanguageContext(
        common_errors=(
            "indentation errors",
            "undefined variables",
            "type errors",
            "import issues",
        ),
        frameworks=("Django", "Flask", "FastAPI"),
        modern_features=("type hints", "async/await", "dataclasses", "f-strings"),
    ),
    "ESLint Config": LanguageContext(
        common_errors=(
            "version compatibility",
            "plugin conflicts",
            "rule conflicts",
            "parser issues",
        ),
        frameworks=("ESLint v8", "ESLint v9", "TypeScript-ESLint"),
        modern_features=("flat config", "extends vs plugins", "overrides"),
    ),
    DEFAULT_CONTEXT_KEY: LanguageContext(
        common_errors=(
            "syntax errors",
            "logic errors",
            "unhandled errors",
            "resource leaks",
        ),
        frameworks=("standard library",),
        modern_features=("idiomatic constructs", "clear naming", "modular structure"),
    ),
}

# React variants share the base language hints
LANGUAGE_ALIASES: dict[str, str] = {
    "JavaScript/React": "JavaScript",
    "TypeScript/React": "TypeScript",
}

SPECIFIC_REQUIREMENTS: dict[str, str] = {
    "JavaScript": (
        "Focus on: variable declarations, async/await usage, modern ES6+ features, "
        "React patterns if applicable"
    ),
    "TypeScript": (
        "Focus on: type annotations, interface compliance, generic usage, "
        "strict mode compatibility"
    ),
    "Java": (
        "Focus on: static/non-static context, access modifiers, exception handling, "
        "object-oriented principles"
    ),
    "Python": "Focus on: indentation, variable scope, import statements, PEP 8 compliance",
    "ESLint Config": (
        "Focus on: ESLint version compatibility, plugin configurations, rule conflicts, "
        "flat vs legacy config"
    ),
    "CSS": (
        "Focus on: selector specificity, responsive design, modern CSS features, "
        "browser compatibility"
    ),
    "HTML": "Focus on: semantic markup, accessibility, modern HTML5 features, validation",
}

DEFAULT_REQUIREMENTS = (
    "Focus on: syntax correctness, logic flow, error handling, best practices"
)

# =============================================================================
# Output contract
# =============================================================================

OUTPUT_SCHEMA = """{
  "errors": [
    {
      "line": <number>,
      "column": <number>,
      "word": "<problematic_token>",
      "type": "<specific_error_type>",
      "level": "<architectural|syntax|logical|performance|security>",
      "message": "<detailed_description>",
      "severity": "<critical|high|medium|low>",
      "context": "<surrounding_code_context>"
    }
  ],
  "suggestions": [
    {
      "line": <number>,
      "type": "<improvement_type>",
      "level": "<architectural|syntax|logical|performance|security>",
      "message": "<detailed_suggestion>",
      "fix": "<specific_code_fix>",
      "reasoning": "<why_this_improvement>"
    }
  ],
  "codeMetrics": {
    "complexity": "<low|medium|high>",
    "maintainability": "<poor|fair|good|excellent>",
    "testability": "<poor|fair|good|excellent>",
    "performance": "<poor|fair|good|excellent>",
    "security": "<poor|fair|good|excellent>"
  },
  "summary": {
    "totalErrors": <number>,
    "criticalErrors": <number>,
    "warnings": <number>,
    "codeQuality": "<excellent|good|fair|poor>",
    "errorsByLevel": {
      "architectural": <number>,
      "syntax": <number>,
      "logical": <number>,
      "performance": <number>,
      "security": <number>
    },
    "confidence": "<high|medium|low>"
  }
}"""

FOCUS_AREAS = (
    "Syntax errors and typos",
    "Logic flaws and incorrect implementations",
    "Performance bottlenecks",
    "Security vulnerabilities",
    "Modern best practices violations",
    "Framework-specific issues",
    "Code organization and architecture",
    "Type safety (for typed languages)",
    "Error handling patterns",
    "Resource management",
)


def get_language_context(language: str) -> LanguageContext:
    """Get review hints for a language, falling back to the generic bucket.

    Args:
        language: Language label from the classifier

    Returns:
        LanguageContext for the language
    """
    key = LANGUAGE_ALIASES.get(language, language)
    return LANGUAGE_CONTEXTS.get(key, LANGUAGE_CONTEXTS[DEFAULT_CONTEXT_KEY])


def get_specific_requirements(language: str) -> str:
    """Get the focus line for a language, falling back to generic requirements."""
    key = LANGUAGE_ALIASES.get(language, language)
    return SPECIFIC_REQUIREMENTS.get(key, DEFAULT_REQUIREMENTS)


def _fence_label(language: str) -> str:
    """Return a code-fence info string for a language label."""
    label = LANGUAGE_ALIASES.get(language, language).lower()
    return "".join(ch for ch in label if ch.isalnum() or ch in "+#")


def build_analysis_prompt(source_text: str, filename: str, language: str) -> str:
    """Build the code review prompt for one file.

    Args:
        source_text: Source code to review (embedded verbatim)
        filename: File name shown to the model
        language: Language label from the classifier

    Returns:
        Prompt text
    """
    context = get_language_context(language)
    line_count = len(source_text.split("\n"))
    focus_areas = "\n".join(f"- {area}" for area in FOCUS_AREAS)

    return (
        f"You are an expert code reviewer with deep knowledge of {language} "
        f"and modern development practices.\n\n"
        f"CRITICAL ANALYSIS INSTRUCTIONS:\n"
        f"1. This is {language} code from \"{filename}\" "
        f"({len(source_text)} chars, {line_count} lines)\n"
        f"2. Analyze ACTUAL CODE - not generic patterns\n"
        f"3. Be contextually aware of {language} conventions and modern practices\n"
        f"4. Report line numbers between 1 and {line_count}\n"
        f"5. Return ONLY valid JSON - no markdown, no extra text\n\n"
        f"LANGUAGE CONTEXT:\n"
        f"- Language: {language}\n"
        f"- Common Issues: {', '.join(context.common_errors)}\n"
        f"- Frameworks/Tools: {', '.join(context.frameworks)}\n"
        f"- Modern Features: {', '.join(context.modern_features)}\n\n"
        f"SPECIFIC ANALYSIS REQUIREMENTS:\n"
        f"{get_specific_requirements(language)}\n\n"
        f"CODE TO ANALYZE:\n"
        f"```{_fence_label(language)}\n"
        f"{source_text}\n"
        f"```\n\n"
        f"Return this EXACT JSON structure:\n"
        f"{OUTPUT_SCHEMA}\n\n"
        f"ANALYSIS FOCUS AREAS:\n"
        f"{focus_areas}"
    )
