"""Workspace bootstrap command."""
