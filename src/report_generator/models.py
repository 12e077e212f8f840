"""
Typed data models for report requests and generated reports.

The models mirror the camelCase JSON contract exchanged with the LLM
(`tableData`, `topEtsyListings`, `shopName`, ...) through pydantic aliases,
while exposing snake_case attributes to Python callers. Dumping a report with
`ReportData.to_payload()` returns the same document the model produced.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_validator,
    model_serializer,
)


# =============================================================================
# ENUMERATIONS
# =============================================================================
class DataSourceMode(str, Enum):
    """Where the report's figures should come from."""

    MANUAL = "manual"
    WEB = "web"


class ReportProfile(str, Enum):
    """Named variants of the expected output schema."""

    GENERIC = "generic"
    MARKETPLACE_LISTINGS = "marketplace_listings"
    KEYWORDS_AND_LISTINGS = "keywords_and_listings"


class ChartKind(str, Enum):
    """Visualization types a chart may request."""

    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    RADAR = "radar"

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["ChartKind"]:
        """Case-insensitive lookup; unknown kinds return None."""
        if not text:
            return None
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


# =============================================================================
# REQUEST MODEL
# =============================================================================
class ReportConfig(BaseModel):
    """The user's report request. Immutable once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    topic: str
    goal: str
    target_audience: str = Field(alias="targetAudience")
    data_type: DataSourceMode = Field(default=DataSourceMode.WEB, alias="dataType")
    raw_data: str = Field(default="", alias="rawData")
    time_range: str = Field(alias="timeRange")
    region: str
    metrics: List[str] = Field(default_factory=list)
    chart_types: List[str] = Field(default_factory=list, alias="chartTypes")
    language: str = "English"


# =============================================================================
# REPORT MODELS
# =============================================================================
class _WireModel(BaseModel):
    """Base for records received from the LLM."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class ChartDataPoint(_WireModel):
    """One (label, value) point; any extra keys the model emits are kept."""

    model_config = ConfigDict(
        populate_by_name=True, coerce_numbers_to_str=True, extra="allow"
    )

    label: str
    value: Union[int, float]


class Chart(_WireModel):
    id: str
    title: str
    type: str
    data: List[ChartDataPoint] = Field(default_factory=list)

    @property
    def kind(self) -> Optional[ChartKind]:
        """The parsed chart kind, or None when the model used an unknown one."""
        return ChartKind.parse(self.type)


class TableRow(RootModel[List[Tuple[str, Any]]]):
    """
    An open-ended table row stored as ordered (key, value) pairs.

    Rows are validated from JSON objects and dumped back to objects with the
    original key order, so heterogeneous rows survive unchanged.
    """

    @field_validator("root", mode="before")
    @classmethod
    def _pairs_from_mapping(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return list(value.items())
        return value

    @model_serializer(mode="plain")
    def _serialize_as_mapping(self) -> Dict[str, Any]:
        return {key: value for key, value in self.root}

    def keys(self) -> List[str]:
        return [key for key, _ in self.root]

    def get(self, key: str, default: Any = None) -> Any:
        for row_key, value in self.root:
            if row_key == key:
                return value
        return default

    def values(self) -> List[Any]:
        return [value for _, value in self.root]


class Source(_WireModel):
    title: str
    url: str
    date: Optional[str] = None


class Listing(_WireModel):
    """A marketplace item."""

    title: str
    shop_name: str = Field(alias="shopName")
    price: Optional[Union[int, float, str]] = None
    url: str
    shop_url: str = Field(alias="shopUrl")


class Store(_WireModel):
    """A competing storefront."""

    name: str
    specialization: str
    rating: Optional[Union[int, float, str]] = None
    url: Optional[str] = None


class Keyword(_WireModel):
    """A search term with its volume and competition tiers."""

    keyword: str
    volume: str
    competition: str
    category: Optional[str] = None


class ReportData(_WireModel):
    """A generated report, ready for presentation."""

    title: str
    summary: str
    methodology: str
    limitations: str
    charts: List[Chart]
    table_data: List[TableRow] = Field(alias="tableData")
    sources: List[Source]
    top_stores: Optional[List[Store]] = Field(default=None, alias="topStores")
    top_etsy_listings: Optional[List[Listing]] = Field(
        default=None, alias="topEtsyListings"
    )
    top_keywords: Optional[List[Keyword]] = Field(default=None, alias="topKeywords")

    def to_payload(self) -> Dict[str, Any]:
        """Dumps the report back to its camelCase JSON document."""
        return self.model_dump(by_alias=True, exclude_unset=True)
