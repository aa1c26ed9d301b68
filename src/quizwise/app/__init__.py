"""Application shell and its Textual front end."""

from __future__ import annotations

from .shell import Library, Notice, QuizShell, ShellSettings

__all__ = ["Library", "Notice", "QuizShell", "ShellSettings"]
