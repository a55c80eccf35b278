"""codelens - LLM-backed code review for files and repositories.

codelens sends source files to a language model and returns a structured
report of line-specific findings, improvement suggestions, and categorical
quality metrics. Files are submitted directly or read from a GitHub
repository in batches.

Core behavior:
- Identical input produces the same prompt, and cached results are reused
- Model output is repaired into a valid report; it is never trusted as-is
- Transient provider failures are retried with exponential backoff
- One failing file never aborts a batch
"""

__version__ = "0.1.0"
__author__ = "codelens Contributors"
