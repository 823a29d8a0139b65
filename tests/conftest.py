"""共通テストフィクスチャ

PNGチャンク・ZIPアーカイブ・JPEG画像を組み立てるファクトリを提供する。
"""

import base64
import io
import json
import struct
import zipfile
import zlib
from collections.abc import Callable
from typing import Any

import pytest
from PIL import Image

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _chunk(chunk_type: bytes, data: bytes) -> bytes:
    """長さ・種別・データ・CRCからなるPNGチャンクを作成する"""
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def _encode_card(card: Any) -> str:
    """JSON値をUTF-8のbase64文字列にする"""
    return base64.b64encode(json.dumps(card, ensure_ascii=False).encode("utf-8")).decode("ascii")


def _text_chunk(keyword: str, text: str) -> bytes:
    # CRCのバイトがbase64文字としてペイロードに連続しないよう末尾にNULを置く
    return _chunk(b"tEXt", keyword.encode("ascii") + b"\x00" + text.encode("latin-1") + b"\x00")


def _build_png(texts: list[tuple[str, str]] | None = None, trailing: bytes = b"") -> bytes:
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
    idat = zlib.compress(b"\x00\xff\x00\x00")
    body = PNG_MAGIC + _chunk(b"IHDR", ihdr) + _chunk(b"IDAT", idat)
    for keyword, text in texts or []:
        body += _text_chunk(keyword, text)
    return body + _chunk(b"IEND", b"") + trailing


def _build_zip(entries: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def _image_bytes(image_format: str, color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 3), color).save(buf, format=image_format)
    return buf.getvalue()


@pytest.fixture
def card_v2() -> dict[str, Any]:
    """chara_card_v2形式のカード"""
    return {
        "spec": "chara_card_v2",
        "spec_version": "2.0",
        "data": {
            "name": "Alice",
            "description": "A curious girl",
            "personality": "cheerful",
            "scenario": "Wonderland",
            "first_mes": "Hello!",
            "creator": "carroll",
            "tags": ["fantasy", "classic"],
            "character_version": "1.2",
            "character_book": {"entries": [{"keys": ["rabbit"], "content": "white"}]},
            "extensions": {
                "risuai": {
                    "emotions": [["happy", "happy.png"]],
                    "additionalAssets": [],
                }
            },
        },
    }


@pytest.fixture
def card_v3() -> dict[str, Any]:
    """chara_card_v3形式のカード"""
    return {
        "spec": "chara_card_v3",
        "spec_version": "3.0",
        "data": {
            "name": "ボブ",
            "description": "建築家",
            "personality": "",
            "scenario": "",
            "first_mes": "こんにちは",
            "creator": "builder",
            "tags": ["jp"],
            "character_version": 3,
            "assets": [
                {"type": "icon", "uri": "ccdefault:", "name": "main", "ext": "png"},
                {"type": "emotion", "uri": "embeded://assets/smile.png", "name": "smile"},
            ],
        },
    }


@pytest.fixture
def legacy_card() -> dict[str, Any]:
    """旧Tavern形式のカード"""
    return {
        "name": "Carol",
        "description": "old style",
        "personality": "calm",
        "scenario": "tavern",
        "first_mes": "Welcome.",
    }


@pytest.fixture
def png_builder() -> Callable[..., bytes]:
    """tEXtチャンクを埋め込んだPNGを作成するファクトリ

    引数は (キーワード, テキスト) のリストと、IENDより後ろに付加するバイト列。
    """
    return _build_png


@pytest.fixture
def zip_builder() -> Callable[[dict[str, bytes]], bytes]:
    """エントリ名 -> 内容の辞書からZIPを作成するファクトリ"""
    return _build_zip


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Pillowで作成した4x3のJPEG画像"""
    return _image_bytes("JPEG")


@pytest.fixture
def png_image_bytes() -> bytes:
    """Pillowで作成した4x3のPNG画像"""
    return _image_bytes("PNG", color=(10, 120, 240))


@pytest.fixture
def card_encoder() -> Callable[[Any], str]:
    """JSON値をPNGのtEXtに埋め込むbase64文字列にするファクトリ"""
    return _encode_card
