"""
settings.py

Runtime knobs for the viewer. Defaults live here; an optional JSON file can
override any of them and command-line flags override the file.

Example settings.json:

    {
        "width": 1600,
        "height": 1000,
        "sde_dir": "data/sde",
        "color_mode": "security",
        "overlays": false
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields
from typing import List, Optional

from palette import COLOR_MODES

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    width: int = 1400
    height: int = 900
    sde_dir: str = "data/sde"
    color_mode: str = "region"
    overlays: bool = True
    icons: bool = True
    region_ids: Optional[List[int]] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    fps: int = 60
    workers: int = 4
    esi_base_url: str = "https://esi.evetech.net/latest"
    extra: dict = field(default_factory=dict, repr=False)

    def validate(self):
        if self.color_mode not in COLOR_MODES:
            logger.warning("Unknown color mode %r; using 'region'", self.color_mode)
            self.color_mode = "region"
        self.width = max(320, int(self.width))
        self.height = max(240, int(self.height))
        self.fps = max(1, int(self.fps))
        self.workers = max(1, int(self.workers))
        return self


def load_settings(path: Optional[str] = None) -> Settings:
    """Defaults, overridden by the JSON file at ``path`` when it exists."""
    settings = Settings()
    if not path:
        return settings.validate()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        logger.info("Settings file %s not found; using defaults", path)
        return settings.validate()

    known = {f.name for f in fields(Settings)} - {"extra"}
    for key, value in raw.items():
        if key in known:
            setattr(settings, key, value)
        else:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            settings.extra[key] = value
    return settings.validate()
