"""Entry point for running codelens as a module.

Usage:
    python -m codelens [command] [options]

Example:
    python -m codelens analyze src/app.py
    python -m codelens batch octocat/hello-world src/index.js
"""

from codelens.cli import app

if __name__ == "__main__":
    app()
