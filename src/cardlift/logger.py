"""CLIのログ出力

VerboseLevel (詳細ログレベル)に応じた出力制御を行い、
抽出結果とサマリをユーザーにわかりやすく表示するために使用される。
抽出エンジン本体は標準のloggingを使い、DEBUGレベルのときだけその出力を表示する。
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from cardlift.card.base import ExtractionResult
    from cardlift.scanner import ScanSummary


class VerboseLevel(IntEnum):
    """詳細ログレベル

    QUIET: エラーのみ出力
    NORMAL: 結果とサマリを出力
    VERBOSE: 失敗理由の詳細も出力（-vオプション）
    DEBUG: 抽出エンジン内部のログも出力（-vvオプション）
    """

    QUIET = -1
    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


@dataclass
class LogConfig:
    """ログ設定

    Attributes:
        verbose_level: ログの詳細度レベル
        log_file: ログ出力先ファイルパス（Noneの場合はファイル出力なし）
        use_emoji: emoji表示を使用するか
    """

    verbose_level: VerboseLevel = VerboseLevel.NORMAL
    log_file: Path | None = None
    use_emoji: bool = True


class ExtractLogger:
    """抽出ログ出力クラス

    使用例:
        >>> config = LogConfig(verbose_level=VerboseLevel.VERBOSE)
        >>> with ExtractLogger(config) as logger:
        ...     logger.info("抽出を開始します")
        ...     logger.verbose("alice.png を処理中")
    """

    _ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

    def __init__(self, config: LogConfig) -> None:
        """ロガーを初期化する

        Args:
            config: ログ設定
        """
        self._config = config
        self._log_file: TextIO | None = None
        self._handler: logging.Handler | None = None
        if config.log_file:
            # クラス自体がコンテキストマネージャとして動作し、__exit__でファイルを閉じる
            self._log_file = open(config.log_file, "w", encoding="utf-8")  # noqa: SIM115
        if config.verbose_level >= VerboseLevel.DEBUG:
            self._attach_engine_handler()

    def __enter__(self) -> ExtractLogger:
        """コンテキストマネージャのエントリポイント"""
        return self

    def __exit__(self, *args: object) -> None:
        """コンテキストマネージャの終了処理"""
        self.close()

    def close(self) -> None:
        """ログファイルとエンジンログのハンドラを解放する"""
        if self._log_file:
            self._log_file.close()
            self._log_file = None
        if self._handler:
            engine_logger = logging.getLogger("cardlift")
            engine_logger.removeHandler(self._handler)
            engine_logger.setLevel(logging.NOTSET)
            self._handler = None

    @property
    def config(self) -> LogConfig:
        """ログ設定を取得する"""
        return self._config

    def _attach_engine_handler(self) -> None:
        """cardliftパッケージのloggingをstderrに出力する"""
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        engine_logger = logging.getLogger("cardlift")
        engine_logger.addHandler(handler)
        engine_logger.setLevel(logging.DEBUG)
        self._handler = handler

    def _print(self, message: str, file: TextIO | None = None) -> None:
        """メッセージを出力する

        Args:
            message: 出力するメッセージ
            file: 出力先（Noneの場合は標準出力）
        """
        if file is None:
            file = sys.stdout
        print(message, file=file)

    def _log_to_file(self, level: str, message: str) -> None:
        """ファイルにログ出力する

        Args:
            level: ログレベル文字列
            message: 出力するメッセージ
        """
        if self._log_file:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            clean_message = self._strip_ansi(message)
            self._log_file.write(f"[{timestamp}] {level}: {clean_message}\n")
            self._log_file.flush()

    def _strip_ansi(self, text: str) -> str:
        """ANSIエスケープシーケンスを除去する"""
        return self._ANSI_ESCAPE_PATTERN.sub("", text)

    def info(self, message: str) -> None:
        """情報メッセージを出力する（NORMAL以上）"""
        if self._config.verbose_level >= VerboseLevel.NORMAL:
            self._print(message)
        self._log_to_file("INFO", message)

    def verbose(self, message: str) -> None:
        """詳細メッセージを出力する（VERBOSE以上）"""
        if self._config.verbose_level >= VerboseLevel.VERBOSE:
            self._print(message)
        self._log_to_file("VERBOSE", message)

    def debug(self, message: str) -> None:
        """デバッグメッセージを出力する（DEBUG以上）"""
        if self._config.verbose_level >= VerboseLevel.DEBUG:
            self._print(message)
        self._log_to_file("DEBUG", message)

    def warning(self, message: str) -> None:
        """警告メッセージを出力する（QUIET以上）"""
        if self._config.verbose_level > VerboseLevel.QUIET:
            self._print(f"警告: {message}")
        self._log_to_file("WARNING", message)

    def log_result(self, file_name: str, result: ExtractionResult) -> None:
        """単一ファイルの抽出結果をログする

        成功はVERBOSE以上、失敗は警告としてQUIET以外で出力する。

        Args:
            file_name: 対象ファイル名
            result: 抽出結果
        """
        if result.is_success and result.info is not None:
            self.verbose(f"抽出: {file_name} -> {result.info.name!r} [{result.info.spec.value}]")
        else:
            error = result.error.value if result.error else "unknown"
            self.warning(f"抽出失敗: {file_name} [{error}] {result.message}")

    def log_summary(self, summary: ScanSummary) -> None:
        """一括抽出のサマリを出力する（NORMAL以上）

        Args:
            summary: 一括抽出のサマリ
        """
        emoji = "✅" if self._config.use_emoji else "[OK]"
        self.info(f"{emoji} Scan complete!")
        self.info(f"   Extracted: {summary.success}/{summary.total}")
        if summary.failed:
            self.info(f"   Failed: {summary.failed}")
