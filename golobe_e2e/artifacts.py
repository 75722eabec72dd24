"""Screenshot sink.

Fire-and-forget from the core's point of view: a capture that fails is
logged and skipped, and never changes a verdict.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from golobe_e2e.config import settings
from golobe_e2e.errors import HarnessError
from golobe_e2e.session import PageHandle

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_label(label: str) -> str:
    cleaned = _UNSAFE.sub("-", label.strip()).strip("-.")
    return cleaned[:120] or "capture"


class ArtifactSink:
    """Persists full-page snapshots keyed by ``<prefix>-<nn>-<label>``."""

    def __init__(self, directory: Optional[Path] = None, prefix: str = "", image_format: Optional[str] = None) -> None:
        self.directory = Path(directory or settings.screenshot_dir)
        self.prefix = sanitize_label(prefix) if prefix else ""
        self.image_format = (image_format or settings.screenshot_format).lower()
        self.captured: List[Path] = []
        self._step = 0

    def scoped(self, prefix: str) -> "ArtifactSink":
        """A sink writing to the same directory under a different prefix."""
        return ArtifactSink(self.directory, prefix, self.image_format)

    def _path_for(self, label: str, extension: str) -> Path:
        self._step += 1
        parts = [p for p in (self.prefix, f"{self._step:02d}", sanitize_label(label)) if p]
        return self.directory / ("-".join(parts) + "." + extension)

    async def capture(self, handle: PageHandle, label: str) -> Optional[Path]:
        """Take a screenshot; returns its path, or None if it could not be taken."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            if self.image_format == "webp":
                path = await self._capture_webp(handle, label)
            else:
                path = self._path_for(label, "png")
                await handle.driver.screenshot(str(path))
        except (HarnessError, OSError) as exc:
            logger.warning("Screenshot '%s' not captured: %s", label, exc)
            return None
        self.captured.append(path)
        logger.info("📸 %s", path.name)
        return path

    async def _capture_webp(self, handle: PageHandle, label: str) -> Path:
        # Playwright has no webp output; convert a png with Pillow.
        from PIL import Image

        path = self._path_for(label, "webp")
        temp_path = path.with_suffix(".temp.png")
        await handle.driver.screenshot(str(temp_path))
        try:
            with Image.open(temp_path) as img:
                img.save(path, "WEBP", quality=int(os.environ.get("SCREENSHOT_QUALITY", "85")))
        finally:
            if temp_path.exists():
                temp_path.unlink()
        return path
