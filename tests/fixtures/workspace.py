"""Filesystem helpers shared by tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass
class WorkspaceBuilder:
    """Write files under a tmp directory with one call."""

    root: Path

    def write(
        self, relative: Union[str, Path], content: Union[str, bytes]
    ) -> Path:
        path = self.root / Path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def env(self, **extra: str) -> dict[str, str]:
        """Environment pointing the workspace and config at this tree."""
        values = {"QUIZWISE_DATA_HOME": str(self.root / "data")}
        values.update(extra)
        return values
