"""Tariff lookup domain: datasets, matching, suggestion and tax waterfalls."""

from .dataset import TariffDataset, get_dataset, reset_caches
from .models import Candidate, SuggestionModel, TariffRecord
from .search import search_us, search_vn
from .suggest import suggest_codes
from .tax_calculator import (
    TaxInputs,
    compute_export_waterfall,
    compute_import_waterfall,
    parse_rate,
)

__all__ = [
    "TariffDataset",
    "TariffRecord",
    "Candidate",
    "SuggestionModel",
    "get_dataset",
    "reset_caches",
    "search_vn",
    "search_us",
    "suggest_codes",
    "TaxInputs",
    "compute_import_waterfall",
    "compute_export_waterfall",
    "parse_rate",
]
