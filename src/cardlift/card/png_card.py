"""PNG埋め込みカードのハンドラ

IEND境界より手前の "ccv3" / "chara" マーカーからカードJSONを取り出す。
取り出し方は独立した戦略の順序付きリストとして定義し、
先頭から順に試行して最初に成功したものを採用する。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from cardlift.card.avatar import PNG_MIME, to_data_url
from cardlift.card.base import (
    BaseCardHandler,
    ExtractionError,
    ExtractionResult,
    StrategyResult,
)
from cardlift.card.schema import (
    CardSpec,
    detect_spec,
    normalize_card,
    normalize_legacy,
    unknown_record,
)
from cardlift.parser.png import (
    CCV3_MARKER,
    CHARA_MARKER,
    MAX_PAYLOAD_CHARS,
    MarkerMatch,
    decode_base64_text,
    extract_after_signature,
    find_signature,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedPayload:
    """マーカーのペイロードをJSONとして読んだ結果

    Attributes:
        match: 取り出したペイロード（マーカーが無い場合はNone）
        value: パース済みJSON値（JSONのnullもNoneになる）
        error: デコードに失敗した場合のメッセージ
    """

    match: MarkerMatch | None
    value: Any = None
    error: str | None = None


@dataclass(frozen=True)
class PngScanContext:
    """PNG走査の共有コンテキスト

    マーカー位置は1回だけ計算し、各戦略で共有する。

    Attributes:
        buffer: PNG全体のバイト列
        ccv3_position: "ccv3" の位置（見つからない場合は-1）
        chara_position: "ccv3" の直後から探した "chara" の位置（見つからない場合は-1）
        max_payload_chars: 収集するbase64文字数の上限
    """

    buffer: bytes
    ccv3_position: int
    chara_position: int
    max_payload_chars: int = MAX_PAYLOAD_CHARS
    _decoded: dict[str, DecodedPayload] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    @classmethod
    def scan(cls, buffer: bytes, max_payload_chars: int = MAX_PAYLOAD_CHARS) -> PngScanContext:
        """バッファを走査してマーカー位置を求める

        Args:
            buffer: PNG全体のバイト列
            max_payload_chars: 収集するbase64文字数の上限

        Returns:
            走査結果のコンテキスト
        """
        ccv3_position = find_signature(buffer, CCV3_MARKER)
        chara_start = ccv3_position + 1 if ccv3_position >= 0 else 0
        chara_position = find_signature(buffer, CHARA_MARKER, chara_start)
        return cls(
            buffer=buffer,
            ccv3_position=ccv3_position,
            chara_position=chara_position,
            max_payload_chars=max_payload_chars,
        )

    def find_payload(self, marker: str) -> MarkerMatch | None:
        """マーカーに続くペイロードを取り出す

        ccv3のペイロードは後続のcharaの位置で打ち切る。
        charaは両マーカーが見つかっている場合のみccv3より後ろから探す。

        Args:
            marker: CCV3_MARKER または CHARA_MARKER

        Returns:
            取り出したペイロード、見つからない場合はNone
        """
        if marker == CCV3_MARKER:
            if self.ccv3_position < 0:
                return None
            end = self.chara_position if self.chara_position > self.ccv3_position else None
            return extract_after_signature(
                self.buffer, CCV3_MARKER, 0, end, max_chars=self.max_payload_chars
            )

        both_found = self.ccv3_position >= 0 and self.chara_position >= 0
        start = self.chara_position if both_found else 0
        return extract_after_signature(
            self.buffer, marker, start, max_chars=self.max_payload_chars
        )

    def decode_payload(self, marker: str) -> DecodedPayload:
        """マーカーのペイロードをbase64デコードしてJSONとして読む

        同じマーカーを複数の戦略が読む場合も、デコードは1回だけ行う。

        Args:
            marker: CCV3_MARKER または CHARA_MARKER

        Returns:
            読み込み結果
        """
        cached = self._decoded.get(marker)
        if cached is not None:
            return cached

        match = self.find_payload(marker)
        if match is None or match.reserved:
            decoded = DecodedPayload(match)
        else:
            try:
                value = json.loads(decode_base64_text(match.payload))
                decoded = DecodedPayload(match, value=value)
            except ValueError as e:
                decoded = DecodedPayload(match, error=str(e))

        self._decoded[marker] = decoded
        return decoded


class CardStrategy(Protocol):
    """PNGからのカード取り出し戦略のプロトコル"""

    @property
    def name(self) -> str:
        """ログ表示用の戦略名"""
        ...

    def attempt(self, context: PngScanContext) -> StrategyResult:
        """カードの取り出しを1回試行する

        Args:
            context: 共有の走査コンテキスト

        Returns:
            試行結果。失敗は例外ではなく結果として返す
        """
        ...


def _load_payload(
    context: PngScanContext, marker: str, stop_on_reserved: bool
) -> tuple[Any, StrategyResult | None]:
    """マーカーのペイロードをJSONとして読み込む

    Returns:
        (パース済みJSON値, 失敗時のStrategyResult) のタプル。
        失敗時は第1要素がNoneになる
    """
    decoded = context.decode_payload(marker)
    match = decoded.match
    if match is None:
        return None, StrategyResult(
            ExtractionResult.fail(
                ExtractionError.MALFORMED_CONTAINER, f"{marker}マーカーが見つかりません"
            )
        )

    if match.reserved:
        return None, StrategyResult(
            ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD,
                f"{marker}のペイロードはカード以外の予約形式です",
            ),
            stop=stop_on_reserved,
        )

    if decoded.error is not None:
        return None, StrategyResult(
            ExtractionResult.fail(
                ExtractionError.CORRUPT_PAYLOAD,
                f"{marker}のペイロードを読み込めません: {decoded.error}",
            )
        )

    return decoded.value, None


class MarkerCardStrategy:
    """マーカーのペイロードをV2/V3カードとして読む戦略"""

    def __init__(self, marker: str, stop_on_reserved: bool = False) -> None:
        """初期化

        Args:
            marker: 対象マーカー
            stop_on_reserved: 予約接頭辞を検出した場合にチェーンを打ち切るか
        """
        self._marker = marker
        self._stop_on_reserved = stop_on_reserved

    @property
    def name(self) -> str:
        return f"{self._marker}:card"

    def attempt(self, context: PngScanContext) -> StrategyResult:
        obj, failure = _load_payload(context, self._marker, self._stop_on_reserved)
        if failure is not None:
            return failure

        if detect_spec(obj) not in (CardSpec.V2, CardSpec.V3):
            return StrategyResult(
                ExtractionResult.fail(
                    ExtractionError.SCHEMA_MISMATCH,
                    f"{self._marker}のペイロードはV2/V3カードではありません",
                )
            )
        return StrategyResult(ExtractionResult.ok(normalize_card(obj)))


class LegacyMarkerStrategy:
    """マーカーのペイロードを旧形式として読む戦略

    V2/V3以外のJSON値は旧Tavern形式として受け入れる。
    マッピングでない値は名前が空の旧形式レコードになり、
    JSONのnullだけは仕様不明のレコードになる。
    """

    def __init__(self, marker: str = CHARA_MARKER) -> None:
        self._marker = marker

    @property
    def name(self) -> str:
        return f"{self._marker}:legacy"

    def attempt(self, context: PngScanContext) -> StrategyResult:
        obj, failure = _load_payload(context, self._marker, stop_on_reserved=True)
        if failure is not None:
            return failure

        if obj is None:
            return StrategyResult(ExtractionResult.ok(unknown_record()))
        if detect_spec(obj) in (CardSpec.V2, CardSpec.V3):
            return StrategyResult(ExtractionResult.ok(normalize_card(obj)))
        return StrategyResult(
            ExtractionResult.ok(normalize_legacy(obj if isinstance(obj, dict) else {}))
        )


def default_strategies() -> list[CardStrategy]:
    """標準の戦略リストを返す（ccv3 -> chara -> 旧形式の順）"""
    return [
        MarkerCardStrategy(CCV3_MARKER),
        MarkerCardStrategy(CHARA_MARKER, stop_on_reserved=True),
        LegacyMarkerStrategy(CHARA_MARKER),
    ]


def run_strategies(strategies: list[CardStrategy], context: PngScanContext) -> ExtractionResult:
    """戦略を順に試行し、最初の成功結果を返す

    すべて失敗した場合は、マーカー未検出よりも具体的な失敗を優先して返す。

    Args:
        strategies: 試行順に並んだ戦略のリスト
        context: 共有の走査コンテキスト

    Returns:
        抽出結果
    """
    failure: ExtractionResult | None = None

    for strategy in strategies:
        outcome = strategy.attempt(context)
        if outcome.result.is_success:
            log.debug(f"PNG戦略 {strategy.name} で抽出しました")
            return outcome.result

        log.debug(f"PNG戦略 {strategy.name} が失敗しました: {outcome.result.message}")
        if failure is None or outcome.result.error != ExtractionError.MALFORMED_CONTAINER:
            failure = outcome.result
        if outcome.stop:
            break

    return failure or ExtractionResult.fail(
        ExtractionError.MALFORMED_CONTAINER, "試行する戦略がありません"
    )


class PngCardHandler(BaseCardHandler):
    """PNG埋め込みカードのハンドラ"""

    def __init__(
        self,
        max_payload_chars: int = MAX_PAYLOAD_CHARS,
        include_avatar: bool = True,
        strategies: list[CardStrategy] | None = None,
    ) -> None:
        """初期化

        Args:
            max_payload_chars: 収集するbase64文字数の上限
            include_avatar: 成功時にPNG全体をアバターとして付与するか
            strategies: 試行する戦略のリスト（Noneの場合は標準の戦略）
        """
        self._max_payload_chars = max_payload_chars
        self._include_avatar = include_avatar
        self._strategies = strategies if strategies is not None else default_strategies()

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".png",)

    @property
    def strategies(self) -> list[CardStrategy]:
        """試行する戦略のリスト"""
        return list(self._strategies)

    def extract(self, buffer: bytes, file_name: str) -> ExtractionResult:
        context = PngScanContext.scan(buffer, self._max_payload_chars)
        result = run_strategies(self._strategies, context)
        if not result.is_success or not self._include_avatar:
            return result

        assert result.info is not None
        # PNGの場合はカードを埋め込んだ画像そのものがアバター
        return ExtractionResult.ok(result.info.with_avatar(to_data_url(buffer, PNG_MIME)))
