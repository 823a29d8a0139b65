"""CharX（ZIP）およびZIP連結JPEGのカードハンドラ"""

from __future__ import annotations

import json
import logging

from cardlift.card.avatar import JPEG_MIME, PNG_MIME, to_data_url
from cardlift.card.base import BaseCardHandler, ExtractionError, ExtractionResult
from cardlift.card.schema import CardSpec, detect_spec, normalize_card
from cardlift.parser.archive import (
    ArchiveError,
    ArchiveReader,
    EmbeddedArchiveInfo,
    ZipArchiveReader,
    find_avatar_entry,
    find_card_entry,
    find_embedded_archive,
)

log = logging.getLogger(__name__)

_JPEG_EXTENSIONS = (".jpg", ".jpeg")


class ArchiveCardHandler(BaseCardHandler):
    """埋め込みアーカイブからcard.jsonとアイコンを取り出すハンドラ

    アバターは以下の優先順位で決定する:
    1. assets/.../icon/image/*.png のエントリ
    2. JPEGの場合、アーカイブより手前の画像本体（無ければファイル全体）
    """

    def __init__(
        self,
        archive_reader: ArchiveReader | None = None,
        include_avatar: bool = True,
    ) -> None:
        """初期化

        Args:
            archive_reader: アーカイブ読み込み実装（Noneの場合はZipArchiveReader）
            include_avatar: アバターを付与するか
        """
        self._reader = archive_reader or ZipArchiveReader()
        self._include_avatar = include_avatar

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".charx", ".jpg", ".jpeg")

    def extract(self, buffer: bytes, file_name: str) -> ExtractionResult:
        archive = find_embedded_archive(buffer)
        if archive is None:
            return ExtractionResult.fail(
                ExtractionError.MALFORMED_CONTAINER, "ZIPアーカイブが見つかりません"
            )
        log.debug(f"ZIPアーカイブを検出しました: offset={archive.offset}, size={archive.size}")

        try:
            entries = self._reader.read_entries(buffer[archive.offset :])
        except ArchiveError as e:
            return ExtractionResult.fail(ExtractionError.CORRUPT_PAYLOAD, str(e))

        card_name = find_card_entry(entries)
        if card_name is None:
            return ExtractionResult.fail(
                ExtractionError.MALFORMED_CONTAINER, "card.jsonがアーカイブ内に見つかりません"
            )

        try:
            obj = json.loads(entries[card_name].decode("utf-8-sig"))
        except ValueError as e:
            return ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD, f"{card_name}を読み込めません: {e}"
            )

        if detect_spec(obj) not in (CardSpec.V2, CardSpec.V3):
            return ExtractionResult.fail(
                ExtractionError.SCHEMA_MISMATCH, f"{card_name}はV2/V3カードではありません"
            )

        info = normalize_card(obj)
        if self._include_avatar:
            info = info.with_avatar(self._resolve_avatar(buffer, file_name, archive, entries))
        return ExtractionResult.ok(info)

    def _resolve_avatar(
        self,
        buffer: bytes,
        file_name: str,
        archive: EmbeddedArchiveInfo,
        entries: dict[str, bytes],
    ) -> str | None:
        """アバターのData URLを決定する

        Returns:
            アバターのData URL。CharXでアイコンが無い場合はNone
        """
        icon_name = find_avatar_entry(entries)
        if icon_name is not None:
            return to_data_url(entries[icon_name], PNG_MIME)

        if not file_name.lower().endswith(_JPEG_EXTENSIONS):
            return None

        if archive.has_leading_body:
            return to_data_url(buffer[: archive.offset], JPEG_MIME)
        return to_data_url(buffer, JPEG_MIME)
