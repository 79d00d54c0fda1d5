"""Registry of named font files shared by the rasterizer and the ASS stage."""

import logging
import os
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from PIL import ImageFont

logger = logging.getLogger(__name__)

FontKey = Tuple[str, int, bool, bool]


class FontRegistry:
    """
    Map font family names to font files.

    Registration is idempotent and safe to call from several threads; the
    rasterizer resolves fonts from worker threads while the caller may still
    be registering. Unknown families resolve to Pillow's default font.
    """

    def __init__(self, fonts: Optional[Dict[str, str]] = None):
        self._lock = threading.RLock()
        self._paths: Dict[str, str] = {}
        self._cache: Dict[FontKey, ImageFont.ImageFont] = {}
        if fonts:
            self.register_many(fonts.items())

    def register(self, name: str, path: str) -> bool:
        """
        Register a font file under a family name.

        Args:
            name: Family name, optionally with a " Bold"/" Italic" suffix
            path: Path to a TrueType/OpenType file

        Returns:
            True if the font is registered (or already was), False if the
            file could not be loaded
        """
        path = os.path.abspath(path)
        with self._lock:
            if self._paths.get(name) == path:
                return True

            try:
                ImageFont.truetype(path, 12)
            except OSError as e:
                logger.warning(f"Could not register font {name!r} from {path}: {e}")
                return False

            previous = self._paths.get(name)
            if previous is not None:
                logger.info(f"Font {name!r} re-registered: {previous} -> {path}")
            self._paths[name] = path
            # Drop resolved fonts that may now point at the wrong file
            self._cache.clear()

        logger.debug(f"Registered font {name!r}: {path}")
        return True

    def register_many(self, fonts: Iterable[Tuple[str, str]]) -> int:
        """Register several ``(name, path)`` pairs; returns how many succeeded."""
        return sum(1 for name, path in fonts if self.register(name, path))

    def path_for(self, name: str) -> Optional[str]:
        """Path registered for a family name, if any."""
        with self._lock:
            return self._paths.get(name)

    def names(self) -> List[str]:
        """Registered family names."""
        with self._lock:
            return sorted(self._paths)

    def _candidates(self, family: str, bold: bool, italic: bool) -> List[str]:
        names = []
        if bold and italic:
            names.append(f"{family} Bold Italic")
        if bold:
            names.append(f"{family} Bold")
        if italic:
            names.append(f"{family} Italic")
        names.append(family)
        return names

    def resolve(
        self, family: str, size: float, bold: bool = False, italic: bool = False
    ) -> ImageFont.ImageFont:
        """
        Load a font for drawing.

        Style variants are tried before the plain family. When nothing
        loads, Pillow's built-in scalable font is used and a warning is
        logged once per (family, size, style).
        """
        pixel_size = max(1, int(round(size)))
        key = (family, pixel_size, bool(bold), bool(italic))

        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            font = None
            for name in self._candidates(family, bold, italic):
                path = self._paths.get(name)
                if path is None:
                    continue
                try:
                    font = ImageFont.truetype(path, pixel_size)
                    break
                except OSError as e:
                    logger.warning(f"Failed to load font {name!r} from {path}: {e}")

            if font is None:
                logger.warning(f"Font {family!r} not registered; using default font")
                font = ImageFont.load_default(pixel_size)

            self._cache[key] = font
            return font

    def fonts_dir(self) -> Optional[str]:
        """Common directory of every registered font, for libass ``fontsdir``."""
        with self._lock:
            dirs = {os.path.dirname(p) for p in self._paths.values()}
        if not dirs:
            return None
        try:
            return os.path.commonpath(list(dirs))
        except ValueError:
            return None
