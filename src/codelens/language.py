"""Language classification by filename.

Maps a filename to a display language and whether the file type is offered
for repository analysis. Pure table lookups; no file access.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath

UNKNOWN_LANGUAGE = "Unknown"

# Extension to display language
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".js": "JavaScript",
    ".jsx": "JavaScript/React",
    ".ts": "TypeScript",
    ".tsx": "TypeScript/React",
    ".py": "Python",
    ".java": "Java",
    ".cpp": "C++",
    ".c": "C",
    ".cs": "C#",
    ".php": "PHP",
    ".rb": "Ruby",
    ".go": "Go",
    ".rs": "Rust",
    ".html": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".less": "LESS",
    ".sql": "SQL",
    ".json": "JSON",
    ".sh": "Shell",
    ".vue": "Vue.js",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".dart": "Dart",
    ".r": "R",
    ".scala": "Scala",
    ".pl": "Perl",
}

# Exact basenames take priority over the extension table
BASENAME_OVERRIDES: dict[str, str] = {
    "eslint.config.js": "ESLint Config",
    "vite.config.js": "Vite Config",
    "webpack.config.js": "Webpack Config",
}

# Compound suffixes checked after basenames, before the plain extension
COMPOUND_SUFFIXES: dict[str, str] = {
    ".config.js": "Configuration",
}

# Extensions offered when listing repository files for analysis
SUPPORTED_EXTENSIONS = frozenset(
    {
        ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".cpp", ".c", ".cs",
        ".php", ".rb", ".go", ".rs", ".html", ".css", ".vue", ".swift",
        ".kt", ".dart", ".r", ".scala", ".pl",
    }
)

# Directory names never listed for analysis (dependencies, build output, tooling)
EXCLUDED_DIRECTORIES = frozenset(
    {
        ".git",
        "node_modules",
        "vendor",
        "bower_components",
        "venv",
        ".venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".tox",
        "dist",
        "build",
        "out",
        "target",
        "coverage",
        "htmlcov",
        ".next",
        ".nuxt",
        ".idea",
        ".vscode",
    }
)


@dataclass(frozen=True)
class LanguageInfo:
    """Classification of a filename.

    Attributes:
        language: Display label ("Unknown" when unrecognized)
        supported: Whether the file type is offered for repository analysis
    """

    language: str
    supported: bool


def classify(filename: str) -> LanguageInfo:
    """Classify a filename into a language.

    Args:
        filename: File name or repository-relative path

    Returns:
        LanguageInfo with the detected language and support flag
    """
    basename = PurePosixPath(filename.replace("\\", "/")).name
    lowered = basename.lower()

    if lowered in BASENAME_OVERRIDES:
        return LanguageInfo(language=BASENAME_OVERRIDES[lowered], supported=True)

    for suffix, language in COMPOUND_SUFFIXES.items():
        if lowered.endswith(suffix) and lowered != suffix:
            return LanguageInfo(language=language, supported=True)

    extension = PurePosixPath(lowered).suffix
    language = EXTENSION_TO_LANGUAGE.get(extension)
    if language is None:
        return LanguageInfo(language=UNKNOWN_LANGUAGE, supported=False)

    return LanguageInfo(language=language, supported=extension in SUPPORTED_EXTENSIONS)


def detect_language(filename: str) -> str:
    """Return only the language label for a filename."""
    return classify(filename).language


def is_supported(path: str) -> bool:
    """Check if a path has a supported type and lies outside excluded directories.

    Args:
        path: Repository-relative path using forward slashes

    Returns:
        True if the file should be offered for analysis
    """
    parts = PurePosixPath(path.replace("\\", "/")).parts
    if any(part in EXCLUDED_DIRECTORIES for part in parts[:-1]):
        return False
    return classify(path).supported
