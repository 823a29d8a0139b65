"""埋め込みアーカイブの検出と読み込みモジュール

CharXカード（ZIP）や、JPEGの後ろにZIPが連結されたファイルから
アーカイブ領域を検出し、card.jsonとアイコン画像のエントリを特定する。
アーカイブの展開処理はArchiveReaderとして差し替え可能にしている。
"""

from __future__ import annotations

import io
import re
import zipfile
import zlib
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

# ZIPローカルファイルヘッダのマジックバイト（4バイト）
ZIP_LOCAL_HEADER_MAGIC = b"PK\x03\x04"

CARD_ENTRY_SUFFIX = "card.json"

# assets/ 以下の icon/image/ 配下にあるPNG
_AVATAR_ENTRY_PATTERN = re.compile(r"(^|/)assets/(?:.+/)?icon/image/.*\.png$", re.IGNORECASE)


class ArchiveError(Exception):
    """アーカイブ読み込みエラー"""

    pass


@dataclass(frozen=True)
class EmbeddedArchiveInfo:
    """ファイル内に埋め込まれたアーカイブの情報

    Attributes:
        offset: アーカイブ開始オフセット（0より大きければ先頭に別データがある）
        size: アーカイブ領域のバイト数（ファイル終端まで）
    """

    offset: int
    size: int

    @property
    def has_leading_body(self) -> bool:
        """アーカイブの手前にデータがあるかを返す"""
        return self.offset > 0


class ArchiveReader(Protocol):
    """アーカイブ読み込みインターフェース"""

    def read_entries(self, data: bytes) -> dict[str, bytes]:
        """アーカイブ内の全エントリを名前 -> 内容の辞書で返す

        Raises:
            ArchiveError: アーカイブとして読み込めない場合
        """
        ...


class ZipArchiveReader:
    """zipfileによるArchiveReaderの実装"""

    def read_entries(self, data: bytes) -> dict[str, bytes]:
        """ZIPアーカイブの全エントリを読み込む

        Args:
            data: ZIPローカルファイルヘッダから始まるバイト列

        Returns:
            エントリ名 -> 展開後のバイト列の辞書（ディレクトリは除く）

        Raises:
            ArchiveError: ZIPとして不正、または展開に失敗した場合
        """
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
                return {
                    info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                }
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise ArchiveError(f"無効なZIPアーカイブです: {e}") from e
        except (OSError, EOFError, RuntimeError, NotImplementedError, zlib.error) as e:
            # 暗号化エントリ・未対応の圧縮方式・切り詰められたデータ
            raise ArchiveError(f"ZIPエントリの展開に失敗しました: {e}") from e


def find_embedded_archive(buffer: bytes) -> EmbeddedArchiveInfo | None:
    """バッファ内の最初のZIPローカルファイルヘッダを検出する

    Args:
        buffer: 入力全体のバイト列

    Returns:
        検出されたアーカイブ情報。見つからない場合はNone
    """
    offset = buffer.find(ZIP_LOCAL_HEADER_MAGIC)
    if offset < 0:
        return None
    return EmbeddedArchiveInfo(offset=offset, size=len(buffer) - offset)


def find_card_entry(names: Iterable[str]) -> str | None:
    """名前が "card.json" で終わる最初のエントリを返す（大文字小文字は区別しない）"""
    for name in names:
        if name.lower().endswith(CARD_ENTRY_SUFFIX):
            return name
    return None


def find_avatar_entry(names: Iterable[str]) -> str | None:
    """assets/.../icon/image/*.png に一致する最初のエントリを返す"""
    for name in names:
        if _AVATAR_ENTRY_PATTERN.search(name):
            return name
    return None
