from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

RateValue = Union[str, bool]


@dataclass(frozen=True)
class TariffRecord:
    """One HS/HTS classification line, loaded read-only from the dataset."""

    code: str
    slug: str
    name_en: str
    name_vi: str = ""
    unit: Optional[str] = None
    rates: Dict[str, RateValue] = field(default_factory=dict, compare=False, hash=False)
    market: str = "vn"

    @property
    def chapter(self) -> str:
        return self.slug[:2]

    @property
    def heading(self) -> str:
        return self.slug[:4]

    @property
    def description(self) -> str:
        return " ".join(part for part in (self.name_en, self.name_vi) if part)


@dataclass(frozen=True)
class Candidate:
    """A pooled record with its re-ranking score, scoped to one request."""

    record: TariffRecord
    score: float = 0.0


# ---------------------------------------------------------------------------
# API models
# ---------------------------------------------------------------------------


class SuggestRequestModel(BaseModel):
    description: Optional[str] = None
    image_data_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("imageDataUrl", "image_data_url"),
        serialization_alias="imageDataUrl",
    )

    model_config = ConfigDict(populate_by_name=True)


class SuggestionModel(BaseModel):
    """External-facing suggestion shape."""

    code: str
    name_en: str = Field(default="", serialization_alias="nameEn")
    name_vi: str = Field(default="", serialization_alias="nameVi")
    reason: str

    model_config = ConfigDict(populate_by_name=True)


class SuggestResponseModel(BaseModel):
    suggestions: List[SuggestionModel] = Field(default_factory=list)
    image_hint: Optional[str] = Field(default=None, serialization_alias="imageHint")

    model_config = ConfigDict(populate_by_name=True)


class SearchResultModel(BaseModel):
    slug: str
    display_code: str = Field(serialization_alias="displayCode")
    description: str

    model_config = ConfigDict(populate_by_name=True)


class SearchResponseModel(BaseModel):
    results: List[SearchResultModel] = Field(default_factory=list)


class RateOptionModel(BaseModel):
    key: str
    label: str
    raw: str
    rate_pct: Optional[float] = None


class OriginDutyModel(BaseModel):
    """One row of the US sourcing matrix."""

    key: str
    origin: str
    rate_pct: Optional[float] = Field(default=None, serialization_alias="ratePct")
    display: str
    status: str
    preferential: bool = False
    penalty: bool = False

    model_config = ConfigDict(populate_by_name=True)


class RecordDetailModel(BaseModel):
    slug: str
    code: str
    name_en: str = Field(serialization_alias="nameEn")
    name_vi: str = Field(serialization_alias="nameVi")
    unit: Optional[str] = None
    chapter: str
    heading: str
    rates: Dict[str, RateValue] = Field(default_factory=dict)
    import_options: List[RateOptionModel] = Field(default_factory=list, serialization_alias="importOptions")
    export_options: List[RateOptionModel] = Field(default_factory=list, serialization_alias="exportOptions")
    origin_duties: Optional[List[OriginDutyModel]] = Field(default=None, serialization_alias="originDuties")

    model_config = ConfigDict(populate_by_name=True)


class ChapterSummaryModel(BaseModel):
    chapter: str
    count: int


class TaxCalculateRequestModel(BaseModel):
    """Waterfall inputs. Rates are percentages, ``env_tax_per_unit`` is VND."""

    unit_price_usd: float = Field(ge=0)
    quantity: float = Field(default=1.0, ge=0)
    fx_rate: Optional[float] = Field(default=None, gt=0)
    import_rate_pct: float = Field(default=0.0, ge=0)
    excise_rate_pct: float = Field(default=0.0, ge=0)
    safeguard_rate_pct: float = Field(default=0.0, ge=0)
    env_tax_per_unit: float = Field(default=0.0, ge=0)
    vat_rate_pct: float = Field(default=0.0, ge=0)
    export_rate_pct: float = Field(default=0.0, ge=0)
    slug: Optional[str] = None
    lang: str = "vi"

    model_config = ConfigDict(extra="forbid")


class ExplainRequestModel(BaseModel):
    hs_code: Optional[str] = None
    name_en: Optional[str] = None


class SearchAssistRequestModel(BaseModel):
    query: Optional[str] = None


class CasLookupRequestModel(BaseModel):
    query: Optional[str] = None


class CasSuggestionModel(BaseModel):
    cas: str
    name_en: Optional[str] = None
    name_vi: Optional[str] = None
    hs_code: Optional[str] = None
    formula: Optional[str] = None
    reason: str


class CasLookupResponseModel(BaseModel):
    suggestions: List[CasSuggestionModel] = Field(default_factory=list)
    source: str


class FxRateModel(BaseModel):
    base: str = "USD"
    quote: str = "VND"
    rate: float
    source: str
