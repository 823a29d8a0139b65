"""JSONカードのハンドラ"""

from __future__ import annotations

import json

from cardlift.card.base import BaseCardHandler, ExtractionError, ExtractionResult
from cardlift.card.schema import CardSpec, detect_spec, normalize_card, normalize_legacy


class JsonCardHandler(BaseCardHandler):
    """UTF-8のJSONファイルを直接カードとして読むハンドラ

    specがV2/V3であれば構造化カード、それ以外のオブジェクトは旧Tavern形式として扱う。
    """

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".json",)

    def extract(self, buffer: bytes, file_name: str) -> ExtractionResult:
        try:
            # 先頭のBOMは許容する
            obj = json.loads(buffer.decode("utf-8-sig"))
        except ValueError as e:
            return ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD, f"JSONとして読み込めません: {e}"
            )

        spec = detect_spec(obj)
        if spec in (CardSpec.V2, CardSpec.V3):
            return ExtractionResult.ok(normalize_card(obj))
        if spec == CardSpec.LEGACY:
            return ExtractionResult.ok(normalize_legacy(obj))
        return ExtractionResult.fail(
            ExtractionError.SCHEMA_MISMATCH, "JSONのトップレベルがオブジェクトではありません"
        )
