"""cardlift - Embedded character card extraction library and CLI tool."""

from cardlift.card.base import ExtractionError, ExtractionResult
from cardlift.card.schema import CardSpec, NormalizedCharacterInfo
from cardlift.config import ExtractorConfig, get_default_config, load_config
from cardlift.extractor import CardExtractor, extract
from cardlift.scanner import CardScanner, ScanEntry, ScanSummary

__version__ = "0.1.0"

__all__ = [
    "CardExtractor",
    "CardScanner",
    "CardSpec",
    "ExtractionError",
    "ExtractionResult",
    "ExtractorConfig",
    "NormalizedCharacterInfo",
    "ScanEntry",
    "ScanSummary",
    "extract",
    "get_default_config",
    "load_config",
]
