"""アバター画像のData URL変換モジュール

画像のバイト列を自己完結したData URLに変換する。
CLI表示用に、Data URLのデコードとPillowによる画像情報の取得も提供する。
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"

# MIMEタイプ -> 保存時の拡張子
AVATAR_SUFFIXES: dict[str, str] = {
    PNG_MIME: ".png",
    JPEG_MIME: ".jpg",
}


@dataclass(frozen=True)
class AvatarInfo:
    """アバター画像の情報

    Attributes:
        mime_type: Data URLに記録されたMIMEタイプ
        byte_size: デコード後のバイト数
        width: 画像の幅（ピクセル）
        height: 画像の高さ（ピクセル）
        format: Pillowが判定した画像フォーマット名
    """

    mime_type: str
    byte_size: int
    width: int
    height: int
    format: str | None


def to_data_url(data: bytes, mime_type: str) -> str:
    """バイト列をData URLに変換する

    Args:
        data: 画像のバイト列
        mime_type: MIMEタイプ（例: "image/png"）

    Returns:
        "data:<mime>;base64,<payload>" 形式の文字列
    """
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """base64形式のData URLをデコードする

    Args:
        data_url: to_data_urlが生成した形式の文字列

    Returns:
        (MIMEタイプ, バイト列) のタプル

    Raises:
        ValueError: Data URLの形式が不正な場合
    """
    if not data_url.startswith("data:"):
        raise ValueError("Data URLではありません")

    header, sep, payload = data_url[5:].partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValueError("base64形式のData URLではありません")

    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Data URLのbase64デコードに失敗しました: {e}") from e

    return header[: -len(";base64")], data


def inspect_avatar(data_url: str) -> AvatarInfo | None:
    """Data URLの画像情報を取得する

    Args:
        data_url: アバターのData URL

    Returns:
        画像情報。デコードできない・画像として認識できない場合はNone
    """
    try:
        mime_type, data = decode_data_url(data_url)
    except ValueError:
        return None

    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            image_format = img.format
    except (UnidentifiedImageError, OSError):
        return None

    return AvatarInfo(
        mime_type=mime_type,
        byte_size=len(data),
        width=width,
        height=height,
        format=image_format,
    )
