from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from linkboard.models.link import Link

logger = logging.getLogger(__name__)


class LinkStoreError(Exception):
    """The links file could not be read or written."""


class LinkStore:
    """Links kept in a small JSON document, upserted by URL."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._links: list[Link] = []
        if not self.path.exists():
            self._write([])
        self._links = self._read()
        logger.info("Loaded %d links from %s", len(self._links), self.path)

    def get_links(self) -> list[Link]:
        with self._lock:
            return [link.model_copy() for link in self._links]

    def save_link(self, link: Link) -> None:
        with self._lock:
            for i, existing in enumerate(self._links):
                if existing.url == link.url:
                    self._links[i] = link
                    break
            else:
                self._links.append(link)
            self._write(self._links)

    def delete_link(self, url: str) -> bool:
        with self._lock:
            remaining = [link for link in self._links if link.url != url]
            removed = len(remaining) != len(self._links)
            if removed:
                self._links = remaining
                self._write(self._links)
            return removed

    # ── internals ───────────────────────────────────────

    def _read(self) -> list[Link]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise LinkStoreError(f"failed to load {self.path}: {exc}") from exc
        return [Link.model_validate(item) for item in data.get("links", [])]

    def _write(self, links: list[Link]) -> None:
        payload = {"links": [link.model_dump() for link in links]}
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise LinkStoreError(f"failed to write {self.path}: {exc}") from exc
