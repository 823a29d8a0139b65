"""抽出結果の共通データ型モジュール

キャラクターカード抽出の各段階が返す結果型とエラー分類を定義する。
公開APIの境界でのみ失敗をNoneに変換し、内部では常にこの結果型を受け渡す。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardlift.card.schema import NormalizedCharacterInfo


class ExtractionError(Enum):
    """抽出失敗の分類

    UNSUPPORTED_FORMAT: ファイル名の拡張子が対応外
    MALFORMED_CONTAINER: マーカー・アーカイブ・card.jsonが見つからない
    CORRUPT_PAYLOAD: base64/UTF-8/JSONのデコードに失敗
    SCHEMA_MISMATCH: JSONは読めたがカード仕様に一致しない
    """

    UNSUPPORTED_FORMAT = "unsupported_format"
    MALFORMED_CONTAINER = "malformed_container"
    CORRUPT_PAYLOAD = "corrupt_payload"
    SCHEMA_MISMATCH = "schema_mismatch"


@dataclass(frozen=True)
class ExtractionResult:
    """抽出結果を表す不変データクラス

    成功時はinfoに正規化済みレコードを持ち、失敗時はerrorとmessageを持つ。

    Attributes:
        info: 正規化済みキャラクター情報（失敗時はNone）
        error: 失敗の分類（成功時はNone）
        message: 追加メッセージ（エラー詳細等）
    """

    info: NormalizedCharacterInfo | None = None
    error: ExtractionError | None = None
    message: str = ""

    @property
    def is_success(self) -> bool:
        """抽出が成功したかどうかを返す"""
        return self.info is not None and self.error is None

    @classmethod
    def ok(cls, info: NormalizedCharacterInfo) -> ExtractionResult:
        """成功結果を作成する"""
        return cls(info=info)

    @classmethod
    def fail(cls, error: ExtractionError, message: str = "") -> ExtractionResult:
        """失敗結果を作成する"""
        return cls(error=error, message=message)


@dataclass(frozen=True)
class StrategyResult:
    """抽出戦略1回分の試行結果

    Attributes:
        result: 試行の抽出結果
        stop: Trueの場合、後続の戦略を試行せずにチェーンを打ち切る
    """

    result: ExtractionResult
    stop: bool = False


class BaseCardHandler(ABC):
    """カード形式ハンドラの基底クラス

    ファイル名の拡張子ごとに抽出処理を担当する抽象基底クラス。
    JSON・CharX/JPEG・PNGの各ハンドラはこのクラスを継承して実装する。
    """

    @property
    @abstractmethod
    def supported_extensions(self) -> tuple[str, ...]:
        """対応する拡張子のタプルを返す

        拡張子はドット付き小文字形式（例: ".png", ".charx"）。

        Returns:
            対応する拡張子のタプル
        """
        ...

    def can_handle(self, file_name: str) -> bool:
        """このハンドラで扱えるファイル名かを判定する（大文字小文字は区別しない）

        Args:
            file_name: 判定対象のファイル名

        Returns:
            扱える場合True
        """
        return file_name.lower().endswith(self.supported_extensions)

    @abstractmethod
    def extract(self, buffer: bytes, file_name: str) -> ExtractionResult:
        """バイト列からキャラクター情報を抽出する

        失敗は例外ではなくExtractionResult.failで返す。

        Args:
            buffer: 入力全体のバイト列
            file_name: 元のファイル名

        Returns:
            抽出結果
        """
        ...
