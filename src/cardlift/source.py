"""入力ソースのバイト列化モジュール

メモリ上のバイト列、ファイルパス、バイナリファイルオブジェクト、
バイトチャンクのイテラブルを、単一の不変バイト列に変換する。
ストリームは走査前にすべて読み切る。
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

ByteSource = bytes | bytearray | memoryview | str | os.PathLike | BinaryIO | Iterable[bytes]


def read_all_bytes(source: ByteSource) -> bytes:
    """入力ソースを読み切ってバイト列を返す

    Args:
        source: バイト列、ファイルパス、read()を持つファイルオブジェクト、
            またはバイトチャンクのイテラブル

    Returns:
        入力全体のバイト列（呼び出しごとに独立したコピー）

    Raises:
        OSError: ファイルの読み込みに失敗した場合
        TypeError: 対応していない入力型の場合
    """
    if isinstance(source, bytes):
        return source
    if isinstance(source, (bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        return Path(source).read_bytes()

    read = getattr(source, "read", None)
    if callable(read):
        data = read()
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("バイナリモードのファイルオブジェクトが必要です")
        return bytes(data)

    if isinstance(source, Iterable):
        chunks: list[bytes] = []
        for chunk in source:
            if not isinstance(chunk, (bytes, bytearray, memoryview)):
                raise TypeError(f"バイト列以外のチャンクが含まれています: {type(chunk).__name__}")
            chunks.append(bytes(chunk))
        return b"".join(chunks)

    raise TypeError(f"対応していない入力型です: {type(source).__name__}")
