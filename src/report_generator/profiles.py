"""
Report profile table.

Each `ReportProfile` differs only in which extension collections it declares
and which of those it requires. All request building and response checking
reads from `PROFILE_SPECS`, so adding a profile means adding one row here.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .models import ReportProfile

# Keys every profile declares and requires, in schema order.
BASE_FIELDS: Tuple[str, ...] = (
    "title",
    "summary",
    "methodology",
    "limitations",
    "charts",
    "tableData",
    "sources",
)

STORES_KEY = "topStores"
LISTINGS_KEY = "topEtsyListings"
KEYWORDS_KEY = "topKeywords"


@dataclass(frozen=True)
class ProfileSpec:
    """Declared and required extension collections for one profile."""

    declared: Tuple[str, ...]
    required: Tuple[str, ...]
    directive: str = ""


PROFILE_SPECS: Dict[ReportProfile, ProfileSpec] = {
    ReportProfile.GENERIC: ProfileSpec(declared=(), required=()),
    ReportProfile.MARKETPLACE_LISTINGS: ProfileSpec(
        declared=(STORES_KEY, LISTINGS_KEY),
        required=(STORES_KEY, LISTINGS_KEY),
        directive=(
            "Include `topStores` with the leading competing storefronts "
            "(name, specialization, rating, url) and `topEtsyListings` with the "
            "best-selling marketplace listings (title, shopName, price, url, shopUrl)."
        ),
    ),
    ReportProfile.KEYWORDS_AND_LISTINGS: ProfileSpec(
        declared=(KEYWORDS_KEY, LISTINGS_KEY, STORES_KEY),
        required=(KEYWORDS_KEY, LISTINGS_KEY),
        directive=(
            "Include `topKeywords` with the most searched terms (keyword, volume "
            "tier, competition tier, category) and `topEtsyListings` with the "
            "listings ranking for them (title, shopName, price, url, shopUrl). "
            "`topStores` may be added when relevant."
        ),
    ),
}


def get_profile_spec(profile: ReportProfile) -> ProfileSpec:
    """Returns the table row for a profile, accepting its string value too."""
    return PROFILE_SPECS[ReportProfile(profile)]


def declared_fields(profile: ReportProfile) -> Tuple[str, ...]:
    """All top-level keys the schema for `profile` describes."""
    return BASE_FIELDS + get_profile_spec(profile).declared


def required_fields(profile: ReportProfile) -> Tuple[str, ...]:
    """The top-level keys the schema for `profile` marks as required."""
    return BASE_FIELDS + get_profile_spec(profile).required
