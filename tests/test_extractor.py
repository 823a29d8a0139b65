"""CardExtractorのテスト"""

import io
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from cardlift import extract
from cardlift.card.base import BaseCardHandler, ExtractionError, ExtractionResult
from cardlift.card.schema import CardSpec
from cardlift.config import AvatarConfig, ExtractorConfig
from cardlift.extractor import CardExtractor


class ExplodingHandler(BaseCardHandler):
    """抽出中に例外を送出するテスト用ハンドラ"""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".boom",)

    def extract(self, buffer: bytes, file_name: str) -> ExtractionResult:
        raise RuntimeError("unexpected")


class UnreadableSource:
    """読み込みでOSErrorを送出するファイルオブジェクト"""

    def read(self) -> bytes:
        raise OSError("device not ready")


@pytest.fixture
def extractor() -> CardExtractor:
    """デフォルト設定のCardExtractor"""
    return CardExtractor()


class TestCardExtractor:
    """CardExtractorのテスト"""

    @pytest.mark.parametrize(
        "file_name,handler_name",
        [
            pytest.param("a.json", "JsonCardHandler", id="正常系: JSON"),
            pytest.param("a.charx", "ArchiveCardHandler", id="正常系: CharX"),
            pytest.param("a.JPEG", "ArchiveCardHandler", id="正常系: JPEG"),
            pytest.param("a.png", "PngCardHandler", id="正常系: PNG"),
            pytest.param("a.txt", None, id="異常系: 対応外"),
            pytest.param("png", None, id="異常系: 拡張子無し"),
        ],
    )
    def test_get_handler(
        self, extractor: CardExtractor, file_name: str, handler_name: str | None
    ) -> None:
        """拡張子からハンドラを選択する"""
        handler = extractor.get_handler(file_name)
        if handler_name is None:
            assert handler is None
        else:
            assert type(handler).__name__ == handler_name

    def test_supported_extensions(self, extractor: CardExtractor) -> None:
        """全ハンドラの拡張子を返す"""
        assert set(extractor.supported_extensions) == {".json", ".charx", ".jpg", ".jpeg", ".png"}

    def test_unsupported_format_does_not_read_source(self, extractor: CardExtractor) -> None:
        """対応外の拡張子では入力を読まずに失敗する"""
        result = extractor.extract_result("notes.txt", UnreadableSource())  # type: ignore[arg-type]
        assert result.error == ExtractionError.UNSUPPORTED_FORMAT
        assert extractor.extract("notes.txt", b"") is None

    def test_unreadable_source(self, extractor: CardExtractor) -> None:
        """入力の読み込み失敗はCORRUPT_PAYLOADになる"""
        result = extractor.extract_result("a.png", UnreadableSource())  # type: ignore[arg-type]
        assert result.error == ExtractionError.CORRUPT_PAYLOAD

    def test_closed_stream(self, extractor: CardExtractor) -> None:
        """閉じたストリームは例外を出さずCORRUPT_PAYLOADになる"""
        stream = io.BytesIO(b"{}")
        stream.close()
        result = extractor.extract_result("a.json", stream)
        assert result.error == ExtractionError.CORRUPT_PAYLOAD
        assert extractor.extract("a.json", stream) is None

    def test_failing_chunk_iterator(self, extractor: CardExtractor) -> None:
        """途中で例外を出すチャンク列はCORRUPT_PAYLOADになる"""

        def chunks():
            yield b"{"
            raise ValueError("stream broke")

        result = extractor.extract_result("a.json", chunks())
        assert result.error == ExtractionError.CORRUPT_PAYLOAD
        assert "stream broke" in result.message

    def test_missing_file_name(self, extractor: CardExtractor) -> None:
        """ファイル名がNoneの場合は対応外の形式として扱う"""
        result = extractor.extract_result(None, b"{}")
        assert result.error == ExtractionError.UNSUPPORTED_FORMAT
        assert extractor.extract(None, b"{}") is None

    def test_handler_exception_is_contained(self) -> None:
        """ハンドラの例外は外に出さない"""
        extractor = CardExtractor(handlers=[ExplodingHandler()])
        result = extractor.extract_result("a.boom", b"data")
        assert result.error == ExtractionError.CORRUPT_PAYLOAD
        assert extractor.extract("a.boom", b"data") is None

    def test_png_from_stream(
        self,
        extractor: CardExtractor,
        png_builder: Callable[..., bytes],
        card_encoder: Callable[[Any], str],
        card_v2: dict[str, Any],
    ) -> None:
        """ストリームから読み込んだPNGを抽出する"""
        png = png_builder([("chara", card_encoder(card_v2))])
        info = extractor.extract("alice.png", io.BytesIO(png))
        assert info is not None
        assert info.name == "Alice"
        assert info.avatar_data_url is not None

    def test_json_from_path(
        self, extractor: CardExtractor, tmp_path: Path, card_v3: dict[str, Any]
    ) -> None:
        """ファイルパスからJSONカードを抽出する"""
        path = tmp_path / "bob.json"
        path.write_text(json.dumps(card_v3, ensure_ascii=False), encoding="utf-8")
        info = extractor.extract(path.name, path)
        assert info is not None
        assert info.spec == CardSpec.V3

    def test_charx_from_chunks(
        self,
        extractor: CardExtractor,
        zip_builder: Callable[[dict[str, bytes]], bytes],
        card_v3: dict[str, Any],
    ) -> None:
        """チャンクに分割されたCharXを抽出する"""
        data = zip_builder({"card.json": json.dumps(card_v3).encode("utf-8")})
        chunks = [data[i : i + 7] for i in range(0, len(data), 7)]
        info = extractor.extract("bob.charx", chunks)
        assert info is not None
        assert info.name == "ボブ"

    def test_avatar_disabled_by_config(
        self,
        png_builder: Callable[..., bytes],
        card_encoder: Callable[[Any], str],
        card_v2: dict[str, Any],
    ) -> None:
        """設定でアバターの付与を無効にできる"""
        config = ExtractorConfig(avatar=AvatarConfig(include=False))
        png = png_builder([("chara", card_encoder(card_v2))])
        info = CardExtractor(config).extract("alice.png", png)
        assert info is not None
        assert info.avatar_data_url is None

    @pytest.mark.parametrize(
        "file_name,data",
        [
            pytest.param("a.png", b"", id="異常系: 空のPNG"),
            pytest.param("a.png", b"\x89PNG\r\n\x1a\n\xff\xff\xff\xff", id="異常系: 壊れたPNG"),
            pytest.param("a.charx", b"PK\x03\x04\x00", id="異常系: 壊れたZIP"),
            pytest.param("a.jpg", b"\xff\xd8\xff", id="異常系: ZIP無しJPEG"),
            pytest.param("a.json", b"", id="異常系: 空のJSON"),
        ],
    )
    def test_broken_inputs_return_none(
        self, extractor: CardExtractor, file_name: str, data: bytes
    ) -> None:
        """壊れた入力でも例外を送出せずNoneを返す"""
        assert extractor.extract(file_name, data) is None


class TestExtractFunction:
    """extract関数のテスト"""

    def test_extract(
        self,
        png_builder: Callable[..., bytes],
        card_encoder: Callable[[Any], str],
        legacy_card: dict[str, Any],
    ) -> None:
        """簡易関数で抽出できる"""
        png = png_builder([("chara", card_encoder(legacy_card))])
        info = extract("carol.png", png)
        assert info is not None
        assert info.spec == CardSpec.LEGACY

    def test_extract_unsupported(self) -> None:
        """対応外の形式はNoneを返す"""
        assert extract("carol.gif", b"GIF89a") is None
