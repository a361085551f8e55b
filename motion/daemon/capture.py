"""Writes new spark files into the watched root."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import aiofiles
import frontmatter
import ulid
from loguru import logger

from .front_matter import DATE_FORMAT, DEFAULT_CATEGORY


@dataclass
class CaptureEntry:
    """A spark about to be written."""
    text: str
    title: str = ""
    category: str = DEFAULT_CATEGORY
    tags: List[str] = field(default_factory=list)
    id: str = ""
    captured_at: Optional[datetime] = None

    def __post_init__(self):
        if self.captured_at is None:
            self.captured_at = datetime.now().replace(microsecond=0)
        if not self.id:
            self.id = str(ulid.ULID())
        if not self.title:
            lines = self.text.strip().split("\n")
            self.title = lines[0][:50].strip() if lines else ""


def slugify(text: str, limit: int = 30) -> str:
    words = re.sub(r"[^\w\s-]", "", text.lower()).split()
    return "-".join(words)[:limit].strip("-") or "spark"


class CaptureService:
    """
    Materializes captures as spark documents the watcher will pick up on
    its next poll.
    """

    def __init__(self, root: Path):
        self.root = root

    def render(self, entry: CaptureEntry) -> str:
        post = frontmatter.Post(
            content=entry.text,
            title=entry.title,
            category=entry.category,
            date=entry.captured_at.strftime(DATE_FORMAT),
            tags=", ".join(entry.tags),
        )
        # Unbounded width keeps every value on its header line
        return frontmatter.dumps(post, width=float("inf")) + "\n"

    async def capture(
        self,
        text: str,
        title: str = "",
        category: str = DEFAULT_CATEGORY,
        tags: Optional[List[str]] = None,
    ) -> Path:
        """Write ``text`` as a new spark and return its path."""
        entry = CaptureEntry(text=text, title=title, category=category, tags=list(tags or []))
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / f"{slugify(entry.title or entry.text)}-{entry.id}.md"

        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(self.render(entry))

        logger.debug(f"Captured spark {entry.id} -> {path}")
        return path
