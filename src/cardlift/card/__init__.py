"""Card module for cardlift.

キャラクターカードの形式別ハンドラ、スキーマ正規化、アバター変換を提供するモジュール。
"""

from cardlift.card.archive_card import ArchiveCardHandler
from cardlift.card.avatar import (
    AVATAR_SUFFIXES,
    AvatarInfo,
    decode_data_url,
    inspect_avatar,
    to_data_url,
)
from cardlift.card.base import (
    BaseCardHandler,
    ExtractionError,
    ExtractionResult,
    StrategyResult,
)
from cardlift.card.json_card import JsonCardHandler
from cardlift.card.png_card import (
    CardStrategy,
    LegacyMarkerStrategy,
    MarkerCardStrategy,
    PngCardHandler,
    PngScanContext,
    default_strategies,
    run_strategies,
)
from cardlift.card.schema import (
    CardSpec,
    NormalizedCharacterInfo,
    detect_spec,
    normalize_card,
    normalize_legacy,
    unknown_record,
)

__all__ = [
    "AVATAR_SUFFIXES",
    "ArchiveCardHandler",
    "AvatarInfo",
    "BaseCardHandler",
    "CardSpec",
    "CardStrategy",
    "ExtractionError",
    "ExtractionResult",
    "JsonCardHandler",
    "LegacyMarkerStrategy",
    "MarkerCardStrategy",
    "NormalizedCharacterInfo",
    "PngCardHandler",
    "PngScanContext",
    "StrategyResult",
    "decode_data_url",
    "default_strategies",
    "detect_spec",
    "inspect_avatar",
    "normalize_card",
    "normalize_legacy",
    "run_strategies",
    "to_data_url",
    "unknown_record",
]
