"""Feature and stage identifier generation."""

import re
import secrets
from datetime import datetime

from featureforge.domain.models import utc_now

FEATURE_ID_PATTERN = re.compile(r"^FEAT-(\d{4})-(\d{6})$")


def _random_digits(width: int = 6) -> str:
    return f"{secrets.randbelow(10**width):0{width}d}"


def generate_feature_id(now: datetime | None = None) -> str:
    """Return a fresh ``FEAT-{year}-{6 digits}`` identifier."""
    year = (now or utc_now()).year
    return f"FEAT-{year}-{_random_digits()}"


def feature_suffix(feature_id: str) -> str:
    """
    Extract the numeric suffix used to derive stage ids.

    ``FEAT-2026-004211`` yields ``004211``. Ids that do not follow the
    standard shape fall back to their last dash-separated segment.
    """
    match = FEATURE_ID_PATTERN.match(feature_id)
    if match:
        return match.group(2)
    return feature_id.rsplit("-", 1)[-1]


def generate_stage_id(prefix: str, feature_id: str) -> str:
    """Return ``{prefix}-{feature suffix}-{6 digits}``, e.g. ``PLAN-004211-839201``."""
    return f"{prefix}-{feature_suffix(feature_id)}-{_random_digits()}"
