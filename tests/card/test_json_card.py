"""JsonCardHandlerのテスト"""

import json
from typing import Any

import pytest

from cardlift.card.base import ExtractionError
from cardlift.card.json_card import JsonCardHandler
from cardlift.card.schema import CardSpec


@pytest.fixture
def handler() -> JsonCardHandler:
    """JsonCardHandlerインスタンス"""
    return JsonCardHandler()


class TestJsonCardHandler:
    """JsonCardHandlerのテスト"""

    @pytest.mark.parametrize(
        "file_name,expected",
        [
            pytest.param("alice.json", True, id="正常系: 小文字"),
            pytest.param("ALICE.JSON", True, id="正常系: 大文字"),
            pytest.param("alice.png", False, id="異常系: PNG"),
        ],
    )
    def test_can_handle(self, handler: JsonCardHandler, file_name: str, expected: bool) -> None:
        """拡張子で対応可否を判定する"""
        assert handler.can_handle(file_name) is expected

    def test_v2_card(self, handler: JsonCardHandler, card_v2: dict[str, Any]) -> None:
        """V2カードを正規化する"""
        result = handler.extract(json.dumps(card_v2).encode("utf-8"), "alice.json")
        assert result.is_success
        assert result.info is not None
        assert result.info.spec == CardSpec.V2
        assert result.info.name == "Alice"
        assert result.info.avatar_data_url is None

    def test_legacy_card(self, handler: JsonCardHandler, legacy_card: dict[str, Any]) -> None:
        """specの無いオブジェクトは旧形式として読む"""
        result = handler.extract(json.dumps(legacy_card).encode("utf-8"), "carol.json")
        assert result.info is not None
        assert result.info.spec == CardSpec.LEGACY
        assert result.info.name == "Carol"

    def test_utf8_bom_is_accepted(self, handler: JsonCardHandler, card_v3: dict[str, Any]) -> None:
        """先頭のBOMを許容する"""
        data = b"\xef\xbb\xbf" + json.dumps(card_v3, ensure_ascii=False).encode("utf-8")
        result = handler.extract(data, "bob.json")
        assert result.info is not None
        assert result.info.name == "ボブ"

    @pytest.mark.parametrize(
        "data,error",
        [
            pytest.param(b"{not json", ExtractionError.CORRUPT_PAYLOAD, id="異常系: 不正なJSON"),
            pytest.param(b"\xff\xfe", ExtractionError.CORRUPT_PAYLOAD, id="異常系: UTF-8ではない"),
            pytest.param(b"[1, 2]", ExtractionError.SCHEMA_MISMATCH, id="異常系: 配列"),
            pytest.param(b'"text"', ExtractionError.SCHEMA_MISMATCH, id="異常系: 文字列"),
        ],
    )
    def test_failures(self, handler: JsonCardHandler, data: bytes, error: ExtractionError) -> None:
        """読めないJSONやオブジェクト以外は失敗になる"""
        result = handler.extract(data, "bad.json")
        assert not result.is_success
        assert result.info is None
        assert result.error == error
