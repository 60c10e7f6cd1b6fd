import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class BadgeModel:
    """Endpoint badge payload, see https://shields.io/badges/endpoint-badge."""
    schemaVersion: int
    label: str
    message: str
    color: str
    style: str


def build_badge(outstanding: Optional[int]) -> BadgeModel:
    count = "unknown" if outstanding is None else str(outstanding)
    return BadgeModel(
        schemaVersion=1,
        label="coverity",
        message=f"{count} defects",
        color="brightgreen",
        style="flat"
    )


def write_badge(path: str, outstanding: Optional[int]) -> bool:
    badge = build_badge(outstanding)
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(badge), f, indent=4)
            f.write("\n")
    except OSError as e:
        logger.warning("Could not write the coverity badge to %s: %s", path, e)
        return False

    logger.debug("Wrote the coverity badge to %s: %s", path, badge.message)
    return True
