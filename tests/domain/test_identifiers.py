"""Tests for feature and stage identifiers."""

import re
from datetime import datetime, timezone

from featureforge.domain.identifiers import (
    FEATURE_ID_PATTERN,
    feature_suffix,
    generate_feature_id,
    generate_stage_id,
)


class TestIdentifiers:
    """Tests for identifier generation."""

    def test_feature_id_shape(self):
        """Feature ids are FEAT-{year}-{6 digits}."""
        feature_id = generate_feature_id(datetime(2026, 3, 1, tzinfo=timezone.utc))
        assert FEATURE_ID_PATTERN.match(feature_id)
        assert feature_id.startswith("FEAT-2026-")

    def test_feature_suffix(self):
        """The suffix is the six-digit tail."""
        assert feature_suffix("FEAT-2026-004211") == "004211"

    def test_feature_suffix_of_nonstandard_id(self):
        """Nonstandard ids fall back to their last segment."""
        assert feature_suffix("custom-id-42") == "42"

    def test_stage_id_shape(self):
        """Stage ids carry the prefix and the feature suffix."""
        stage_id = generate_stage_id("PLAN", "FEAT-2026-004211")
        assert re.fullmatch(r"PLAN-004211-\d{6}", stage_id)
