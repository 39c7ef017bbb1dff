"""File-backed knowledge block injected into the reply prompt."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

logger = logging.getLogger("support.chat.knowledge")


@dataclass(frozen=True)
class KnowledgeBase:
    """Static store knowledge the assistant may answer from."""

    store_name: str
    text: str
    source: str = "inline"

    @classmethod
    def from_file(cls, path: Union[str, Path], *, store_name: str) -> "KnowledgeBase":
        """Load the knowledge block from a markdown/text file.

        Raises:
            FileNotFoundError: if the file does not exist.
            ValueError: if the file is empty.
        """
        file_path = Path(path)
        text = file_path.read_text(encoding="utf-8").strip()
        if not text:
            raise ValueError(f"Knowledge file {file_path} is empty")
        logger.info(f"Loaded knowledge block from {file_path} ({len(text)} chars)")
        return cls(store_name=store_name, text=text, source=str(file_path))
