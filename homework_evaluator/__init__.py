"""Grades Google Docs in a Drive folder against a rubric with an OpenAI chat model."""

__version__ = "0.1.0"
