"""キャラクターカード抽出の公開エントリポイント

ファイル名の拡張子から形式別ハンドラを選び、入力を読み切って抽出を行う。
extract()は例外を外に出さず、何も取り出せなかった場合はNoneを返す。
"""

from __future__ import annotations

import logging

from cardlift.card.archive_card import ArchiveCardHandler
from cardlift.card.base import BaseCardHandler, ExtractionError, ExtractionResult
from cardlift.card.json_card import JsonCardHandler
from cardlift.card.png_card import PngCardHandler
from cardlift.card.schema import NormalizedCharacterInfo
from cardlift.config import ExtractorConfig, get_default_config
from cardlift.parser.archive import ArchiveReader
from cardlift.source import ByteSource, read_all_bytes

log = logging.getLogger(__name__)


class CardExtractor:
    """キャラクターカード抽出クラス

    呼び出しごとに独立したバッファを扱い、インスタンスは状態を持たないため
    複数スレッドから同時に使用できる。

    使用例:
        >>> extractor = CardExtractor()
        >>> info = extractor.extract("alice.png", Path("alice.png"))
        >>> result = extractor.extract_result("alice.charx", data)
    """

    def __init__(
        self,
        config: ExtractorConfig | None = None,
        archive_reader: ArchiveReader | None = None,
        handlers: list[BaseCardHandler] | None = None,
    ) -> None:
        """初期化

        Args:
            config: 抽出設定（Noneの場合はデフォルト設定）
            archive_reader: アーカイブ読み込み実装（Noneの場合はZIP実装）
            handlers: 形式別ハンドラのリスト（Noneの場合はJSON/アーカイブ/PNG）
        """
        self._config = config or get_default_config()
        if handlers is None:
            include_avatar = self._config.avatar.include
            handlers = [
                JsonCardHandler(),
                ArchiveCardHandler(archive_reader, include_avatar=include_avatar),
                PngCardHandler(
                    max_payload_chars=self._config.scanner.max_payload_chars,
                    include_avatar=include_avatar,
                ),
            ]
        self._handlers = handlers

    @property
    def config(self) -> ExtractorConfig:
        """抽出設定"""
        return self._config

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        """全ハンドラの対応拡張子"""
        return tuple(ext for handler in self._handlers for ext in handler.supported_extensions)

    def get_handler(self, file_name: str) -> BaseCardHandler | None:
        """ファイル名に対応するハンドラを取得する

        Args:
            file_name: ファイル名

        Returns:
            最初にマッチしたハンドラ、存在しない場合はNone
        """
        for handler in self._handlers:
            if handler.can_handle(file_name):
                return handler
        return None

    def extract_result(self, file_name: str | None, source: ByteSource) -> ExtractionResult:
        """カードを抽出し、失敗理由を含む結果を返す

        Args:
            file_name: 形式判定に使うファイル名（Noneは拡張子無しとして扱う）
            source: 入力ソース

        Returns:
            抽出結果（例外は送出しない）
        """
        file_name = file_name or ""
        handler = self.get_handler(file_name)
        if handler is None:
            return ExtractionResult.fail(
                ExtractionError.UNSUPPORTED_FORMAT, f"対応していない形式です: {file_name}"
            )

        try:
            buffer = read_all_bytes(source)
        except Exception as e:
            log.debug(f"入力の読み込みに失敗しました: {file_name}", exc_info=True)
            return ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD, f"入力を読み込めません: {e}"
            )

        try:
            result = handler.extract(buffer, file_name)
        except Exception as e:
            # 想定外の入力でも呼び出し元のフォールバックを妨げない
            log.debug(f"抽出中に予期しないエラーが発生しました: {file_name}", exc_info=True)
            return ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD, f"抽出中にエラーが発生しました: {e}"
            )

        if result.is_success:
            log.debug(f"抽出に成功しました: {file_name}")
        else:
            log.debug(f"抽出に失敗しました: {file_name}: {result.error} {result.message}")
        return result

    def extract(
        self, file_name: str | None, source: ByteSource
    ) -> NormalizedCharacterInfo | None:
        """カードを抽出する

        Args:
            file_name: 形式判定に使うファイル名
            source: 入力ソース

        Returns:
            正規化済みキャラクター情報。取り出せなかった場合はNone
        """
        return self.extract_result(file_name, source).info


def extract(
    file_name: str | None,
    source: ByteSource,
    *,
    config: ExtractorConfig | None = None,
    archive_reader: ArchiveReader | None = None,
) -> NormalizedCharacterInfo | None:
    """カードを抽出する（CardExtractorの簡易関数）

    Args:
        file_name: 形式判定に使うファイル名
        source: 入力ソース
        config: 抽出設定
        archive_reader: アーカイブ読み込み実装

    Returns:
        正規化済みキャラクター情報。取り出せなかった場合はNone
    """
    return CardExtractor(config=config, archive_reader=archive_reader).extract(file_name, source)
