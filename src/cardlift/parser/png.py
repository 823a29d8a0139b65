"""PNG境界計算とシグネチャ走査モジュール

PNGのIENDチャンク終端を境界として求め、その手前の領域から
"ccv3" / "chara" のASCIIマーカーに続くbase64ペイロードを取り出す。
チャンク構造は境界計算にのみ使い、マーカーはバイト列の単純走査で探す。
"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass

# PNGのマジックバイト（8バイト）
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

# 終端チャンクの種別
IEND_TYPE = b"IEND"

CCV3_MARKER = "ccv3"
CHARA_MARKER = "chara"

# chara直後にこの接頭辞があるペイロードはカードではない
RESERVED_PREFIX = "rcc||"

# 収集するbase64文字数の上限（5MiB）
MAX_PAYLOAD_CHARS = 5 * 1024 * 1024

_BASE64_BYTES = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/=")

# NUL : = space | tab LF CR
_SEPARATOR_BYTES = frozenset(b"\x00:= |\t\n\r")


@dataclass(frozen=True)
class MarkerMatch:
    """マーカー直後から取り出したペイロード

    Attributes:
        payload: base64文字のみからなる文字列
        position: マーカーの開始オフセット
        reserved: 区切りバイトの直後が予約接頭辞 "rcc||" で始まるか
    """

    payload: str
    position: int
    reserved: bool = False


def find_iend_end_offset(buffer: bytes) -> int:
    """IENDチャンクのCRC直後のオフセットを返す

    マジックバイトが一致しない、またはIENDに到達する前に
    構造が壊れている場合はバッファ終端を返す。

    Args:
        buffer: 入力全体のバイト列

    Returns:
        境界オフセット
    """
    size = len(buffer)
    if not buffer.startswith(PNG_MAGIC):
        return size

    offset = len(PNG_MAGIC)
    while offset + 8 <= size:
        (length,) = struct.unpack(">I", buffer[offset : offset + 4])
        chunk_type = buffer[offset + 4 : offset + 8]
        offset += 8
        # データ + CRC(4バイト)
        if offset + length + 4 > size:
            return size
        offset += length + 4
        if chunk_type == IEND_TYPE:
            return offset

    return size


def _hard_end(buffer: bytes, end: int | None) -> int:
    boundary = find_iend_end_offset(buffer)
    return boundary if end is None else min(boundary, end)


def find_signature(buffer: bytes, signature: str, start: int = 0, end: int | None = None) -> int:
    """境界より手前でシグネチャを検索する

    Args:
        buffer: 入力全体のバイト列
        signature: ASCIIシグネチャ
        start: 検索開始オフセット
        end: 検索終了オフセット（Noneの場合は境界まで）

    Returns:
        シグネチャ全体が範囲内に収まる最初の出現位置。見つからない場合は-1
    """
    return buffer.find(signature.encode("ascii"), max(0, start), _hard_end(buffer, end))


def extract_after_signature(
    buffer: bytes,
    signature: str,
    start: int = 0,
    end: int | None = None,
    max_chars: int = MAX_PAYLOAD_CHARS,
) -> MarkerMatch | None:
    """シグネチャ直後のbase64ペイロードを取り出す

    区切りバイトを読み飛ばした後、base64アルファベットが続く限り収集する。
    境界（またはend）を越えて読むことはなく、max_chars文字で打ち切る。

    Args:
        buffer: 入力全体のバイト列
        signature: ASCIIシグネチャ
        start: シグネチャの検索開始オフセット
        end: 読み取り終了オフセット（Noneの場合は境界まで）
        max_chars: 収集する最大文字数

    Returns:
        取り出したペイロード。シグネチャが無いかペイロードが空の場合はNone
    """
    hard_end = _hard_end(buffer, end)
    position = buffer.find(signature.encode("ascii"), max(0, start), hard_end)
    if position < 0:
        return None

    k = position + len(signature)
    while k < hard_end and buffer[k] in _SEPARATOR_BYTES:
        k += 1

    begin = k
    reserved = buffer.startswith(RESERVED_PREFIX.encode("ascii"), begin, hard_end)
    limit = min(hard_end, k + max(0, max_chars))
    while k < limit and buffer[k] in _BASE64_BYTES:
        k += 1

    if k == begin:
        return None
    return MarkerMatch(
        payload=buffer[begin:k].decode("ascii"),
        position=position,
        reserved=reserved,
    )


def decode_base64_text(payload: str) -> str:
    """base64ペイロードをUTF-8文字列にデコードする

    末尾のパディングは省略されていてもよい。

    Args:
        payload: base64文字列

    Returns:
        デコード後の文字列

    Raises:
        ValueError: base64またはUTF-8として不正な場合
    """
    body = payload
    if len(body) % 4 == 0:
        body = body.removesuffix("==") if body.endswith("==") else body.removesuffix("=")
    if len(body) % 4 == 1 or "=" in body:
        raise ValueError("base64の長さまたはパディングが不正です")

    padded = body + "=" * (-len(body) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"base64デコードに失敗しました: {e}") from e

    # UnicodeDecodeErrorはValueErrorのサブクラス
    return raw.decode("utf-8")
