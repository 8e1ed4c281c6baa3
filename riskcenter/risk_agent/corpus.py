# riskcenter/risk_agent/corpus.py
# Purpose: Read-only reference corpus (section title -> section text)

"""
Reference corpus loaded once per session and never mutated.

Sources:
- a JSON file: {"title": "text", ...} or [{"title": ..., "text": ...}, ...]
- a directory of .txt/.md files (title = file stem, sorted by name)
- the sample employee handbook shipped with the package
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

from ..config import APP_CONFIG


logger = logging.getLogger(__name__)

DEFAULT_CORPUS_PATH = Path(__file__).resolve().parent.parent / "data" / "sample_handbook.json"
TEXT_SUFFIXES = (".txt", ".md")


class ReferenceCorpus(Mapping):
    """Ordered, immutable mapping of section title to full section text."""

    def __init__(self, sections: Mapping[str, str]):
        checked = {}
        for title, text in sections.items():
            if not isinstance(title, str) or not isinstance(text, str):
                raise TypeError("Corpus sections must map str titles to str text")
            checked[title] = text
        self._sections = MappingProxyType(checked)

    def __getitem__(self, title: str) -> str:
        return self._sections[title]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    def __repr__(self) -> str:
        return f"ReferenceCorpus({len(self)} sections)"

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ReferenceCorpus":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, list):
            sections = {item["title"]: item["text"] for item in data}
        elif isinstance(data, dict):
            sections = data
        else:
            raise ValueError(f"Unsupported corpus JSON in {path}: expected object or list")

        logger.info(f"Loaded corpus with {len(sections)} sections from {path}")
        return cls(sections)

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "ReferenceCorpus":
        directory = Path(path)
        files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix in TEXT_SUFFIXES)
        sections = {p.stem: p.read_text(encoding="utf-8") for p in files}
        logger.info(f"Loaded corpus with {len(sections)} sections from {directory}")
        return cls(sections)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "ReferenceCorpus":
        """Load from a file or directory; falls back to CORPUS_PATH, then the sample handbook."""
        if path is None:
            path = APP_CONFIG.corpus_path or DEFAULT_CORPUS_PATH
        path = Path(path)
        if path.is_dir():
            return cls.from_directory(path)
        return cls.from_json(path)

    @classmethod
    def load_default(cls) -> "ReferenceCorpus":
        return cls.from_json(DEFAULT_CORPUS_PATH)


__all__ = ["ReferenceCorpus", "DEFAULT_CORPUS_PATH"]
