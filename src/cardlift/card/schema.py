"""キャラクターカードのスキーマ正規化モジュール

chara_card_v2 / chara_card_v3 / 旧Tavern形式（offspec）の3世代のカード構造を
単一のNormalizedCharacterInfoに変換する。
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class CardSpec(Enum):
    """カード仕様の種別"""

    V2 = "chara_card_v2"
    V3 = "chara_card_v3"
    LEGACY = "offspec"
    UNKNOWN = "unknown"


# 構造化カードとして扱うspec値
STRUCTURED_SPECS = frozenset({CardSpec.V2.value, CardSpec.V3.value})

# V3のassetsでhasAssetとみなすtype
_ASSET_TYPES = frozenset({"x-risu-asset", "icon"})


@dataclass(frozen=True)
class NormalizedCharacterInfo:
    """正規化済みキャラクター情報

    抽出エンジンが外部に返す唯一のレコード型。
    元のバイト列への参照は保持しない。

    Attributes:
        spec: カード仕様の種別
        spec_version: 仕様バージョン文字列
        name: キャラクター名（空文字列は許容、Noneにはならない）
        description: 説明
        personality: 性格
        scenario: シナリオ
        first_message: 最初のメッセージ
        creator: 作成者
        tags: タグ一覧
        character_version: キャラクターのバージョン
        has_lore: ロアブックのエントリを持つか
        has_emotion: 感情画像アセットを持つか
        has_asset: 追加アセットを持つか
        avatar_data_url: アバター画像のData URL
    """

    spec: CardSpec
    name: str
    spec_version: str | None = None
    description: str | None = None
    personality: str | None = None
    scenario: str | None = None
    first_message: str | None = None
    creator: str | None = None
    tags: tuple[str, ...] = ()
    character_version: str | int | float | None = None
    has_lore: bool = False
    has_emotion: bool = False
    has_asset: bool = False
    avatar_data_url: str | None = None

    def with_avatar(self, avatar_data_url: str | None) -> NormalizedCharacterInfo:
        """アバターを設定したコピーを返す"""
        return replace(self, avatar_data_url=avatar_data_url)

    def to_dict(self, include_avatar: bool = True) -> dict[str, Any]:
        """外部レコード形式（camelCaseキー）の辞書に変換する

        Args:
            include_avatar: avatarDataUrlを含めるか

        Returns:
            JSONシリアライズ可能な辞書
        """
        data: dict[str, Any] = {
            "spec": self.spec.value,
            "specVersion": self.spec_version,
            "name": self.name,
            "description": self.description,
            "personality": self.personality,
            "scenario": self.scenario,
            "firstMessage": self.first_message,
            "creator": self.creator,
            "tags": list(self.tags),
            "characterVersion": self.character_version,
            "hasLore": self.has_lore,
            "hasEmotion": self.has_emotion,
            "hasAsset": self.has_asset,
        }
        if include_avatar:
            data["avatarDataUrl"] = self.avatar_data_url
        return data


def detect_spec(obj: Any) -> CardSpec:
    """JSONオブジェクトのカード仕様を判定する

    Args:
        obj: パース済みJSON値

    Returns:
        spec値がV2/V3ならその種別、それ以外のマッピングはLEGACY、
        マッピングでなければUNKNOWN
    """
    if not isinstance(obj, dict):
        return CardSpec.UNKNOWN
    spec = obj.get("spec")
    if spec == CardSpec.V2.value:
        return CardSpec.V2
    if spec == CardSpec.V3.value:
        return CardSpec.V3
    return CardSpec.LEGACY


def normalize_card(obj: dict[str, Any]) -> NormalizedCharacterInfo:
    """V2/V3カードを正規化する

    Args:
        obj: specがchara_card_v2またはchara_card_v3のカード辞書

    Returns:
        正規化済みキャラクター情報

    Raises:
        ValueError: specがV2/V3でない場合
    """
    spec = detect_spec(obj)
    if spec not in (CardSpec.V2, CardSpec.V3):
        raise ValueError(f"構造化カードではありません: spec={obj.get('spec')!r}")

    data = obj.get("data")
    if not isinstance(data, dict):
        data = {}

    assets = data.get("assets")
    risuai = _get_mapping(_get_mapping(data, "extensions"), "risuai")

    if isinstance(assets, list):
        has_emotion = any(_asset_type(a) == "emotion" for a in assets)
        has_asset = any(_asset_type(a) in _ASSET_TYPES for a in assets)
    else:
        has_emotion = _non_empty_list(risuai.get("emotions"))
        has_asset = _non_empty_list(risuai.get("additionalAssets"))

    book = _get_mapping(data, "character_book")

    return NormalizedCharacterInfo(
        spec=spec,
        spec_version=_optional_str(obj.get("spec_version")),
        name=_text(data.get("name")),
        description=_text(data.get("description")),
        personality=_text(data.get("personality")),
        scenario=_text(data.get("scenario")),
        first_message=_text(data.get("first_mes")),
        creator=_text(data.get("creator")),
        tags=_tags(data.get("tags")),
        character_version=_version(data.get("character_version")),
        has_lore=_non_empty_list(book.get("entries")),
        has_emotion=has_emotion,
        has_asset=has_asset,
    )


def normalize_legacy(obj: dict[str, Any]) -> NormalizedCharacterInfo:
    """旧Tavern形式のフラットなカードを正規化する

    Args:
        obj: トップレベルにname等を持つ辞書

    Returns:
        正規化済みキャラクター情報（フラグはすべてFalse）
    """
    return NormalizedCharacterInfo(
        spec=CardSpec.LEGACY,
        spec_version=_optional_str(obj.get("spec_version")),
        name=_text(obj.get("name")),
        description=_text(obj.get("description")),
        personality=_text(obj.get("personality")),
        scenario=_text(obj.get("scenario")),
        first_message=_text(obj.get("first_mes")),
    )


def unknown_record() -> NormalizedCharacterInfo:
    """仕様不明のペイロード用の空レコードを返す"""
    return NormalizedCharacterInfo(spec=CardSpec.UNKNOWN, name="")


def _get_mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _asset_type(asset: Any) -> Any:
    return asset.get("type") if isinstance(asset, dict) else None


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _text(value: Any) -> str:
    # null・欠落は空文字列に揃える
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(tag for tag in value if isinstance(tag, str))


def _version(value: Any) -> str | int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return value
    return None
