"""Parser module for cardlift.

コンテナ形式の低レベル解析を行うモジュール。
PNGのIEND境界計算とマーカー走査、埋め込みZIPアーカイブの検出と読み込みを提供する。
"""

from cardlift.parser.archive import (
    ZIP_LOCAL_HEADER_MAGIC,
    ArchiveError,
    ArchiveReader,
    EmbeddedArchiveInfo,
    ZipArchiveReader,
    find_avatar_entry,
    find_card_entry,
    find_embedded_archive,
)
from cardlift.parser.png import (
    CCV3_MARKER,
    CHARA_MARKER,
    MAX_PAYLOAD_CHARS,
    PNG_MAGIC,
    RESERVED_PREFIX,
    MarkerMatch,
    decode_base64_text,
    extract_after_signature,
    find_iend_end_offset,
    find_signature,
)

__all__ = [
    "ArchiveError",
    "ArchiveReader",
    "CCV3_MARKER",
    "CHARA_MARKER",
    "EmbeddedArchiveInfo",
    "MAX_PAYLOAD_CHARS",
    "MarkerMatch",
    "PNG_MAGIC",
    "RESERVED_PREFIX",
    "ZIP_LOCAL_HEADER_MAGIC",
    "ZipArchiveReader",
    "decode_base64_text",
    "extract_after_signature",
    "find_avatar_entry",
    "find_card_entry",
    "find_embedded_archive",
    "find_iend_end_offset",
    "find_signature",
]
