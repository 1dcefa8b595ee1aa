"""Tier feature gate."""

from enum import Enum
from typing import Union

from sqlalchemy.orm import Session

from clubhub_api.db.models import Club, Tier


class TierFeature(str, Enum):
    SEPA = "sepa"
    REPORTS = "reports"
    BANK_IMPORT = "bank_import"


# Feature -> Tier column
FEATURE_FLAGS: dict[TierFeature, str] = {
    TierFeature.SEPA: "sepa_enabled",
    TierFeature.REPORTS: "reports_enabled",
    TierFeature.BANK_IMPORT: "bank_import_enabled",
}


class UnknownFeatureError(ValueError):
    """Raised for a feature name outside TierFeature.

    This is a programming error in an endpoint declaration, not a denial.
    """


def parse_feature(feature: Union[str, TierFeature]) -> TierFeature:
    try:
        return TierFeature(feature)
    except ValueError:
        raise UnknownFeatureError(f"Unknown tier feature: {feature!r}") from None


class TierFeatureGate:
    def __init__(self, db: Session):
        self.db = db

    def _load_tier(self, club_id: str) -> tuple[bool, Tier | None]:
        row = (
            self.db.query(Club.id, Tier)
            .outerjoin(Tier, Tier.id == Club.tier_id)
            .filter(Club.id == club_id)
            .first()
        )
        if row is None:
            return False, None
        return True, row[1]

    def is_feature_enabled(self, club_id: str, feature: Union[str, TierFeature]) -> bool:
        """Check a single feature flag for the club's tier.

        A club without a tier has every feature. An unknown club has none.

        Raises:
            UnknownFeatureError: feature is not a TierFeature
        """
        flag = FEATURE_FLAGS[parse_feature(feature)]
        exists, tier = self._load_tier(club_id)
        if not exists:
            return False
        if tier is None:
            return True
        return bool(getattr(tier, flag))

    def are_features_enabled(self, club_id: str, features: list[Union[str, TierFeature]]) -> bool:
        """AND across all features."""
        return all(self.is_feature_enabled(club_id, f) for f in features)

    def features_for(self, club_id: str) -> dict[TierFeature, bool]:
        """Map of every feature to its state for the club."""
        exists, tier = self._load_tier(club_id)
        result = {}
        for feature, flag in FEATURE_FLAGS.items():
            if not exists:
                result[feature] = False
            elif tier is None:
                result[feature] = True
            else:
                result[feature] = bool(getattr(tier, flag))
        return result
