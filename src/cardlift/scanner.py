"""ディレクトリ一括抽出モジュール

ディレクトリ内の対応ファイルを並列に抽出し、結果のサマリーを返すCardScannerを提供する。
"""

import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

from cardlift.card.base import ExtractionResult
from cardlift.extractor import CardExtractor


@dataclass(frozen=True)
class ScanEntry:
    """単一ファイルの抽出結果

    Attributes:
        path: 対象ファイルのパス
        result: 抽出結果
    """

    path: Path
    result: ExtractionResult


@dataclass
class ScanSummary:
    """一括抽出サマリー

    mutableとして定義し、結果を蓄積できるようにする。

    Attributes:
        total: 抽出対象の総ファイル数
        success: 抽出成功数
        failed: 抽出失敗数
        entries: 個々の抽出結果のリスト（パス順）
    """

    total: int = 0
    success: int = 0
    failed: int = 0
    entries: list[ScanEntry] = field(default_factory=list)


# 進捗コールバックの型エイリアス
ProgressCallback = Callable[[int, int], None]


class CardScanner:
    """一括抽出クラス

    Attributes:
        extractor: 使用するCardExtractor
        max_workers: 最大ワーカー数
        progress_callback: 進捗報告用コールバック
    """

    def __init__(
        self,
        extractor: CardExtractor | None = None,
        max_workers: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """CardScannerを初期化する

        Args:
            extractor: 使用するCardExtractor（Noneの場合はデフォルト設定）
            max_workers: 最大ワーカー数（Noneの場合は設定値、未設定ならCPUコア数）
            progress_callback: 進捗報告用コールバック関数
        """
        self.extractor = extractor or CardExtractor()
        self.max_workers = (
            max_workers or self.extractor.config.scan.max_workers or (os.cpu_count() or 1)
        )
        self.progress_callback = progress_callback

    def collect_files(self, directory: Path, recursive: bool = True) -> list[Path]:
        """対応する拡張子のファイルを収集する

        Args:
            directory: 対象ディレクトリ
            recursive: サブディレクトリも再帰的に処理するか

        Returns:
            ファイルパスのリスト（ソート済み）
        """
        pattern = "**/*" if recursive else "*"
        return sorted(
            path
            for path in directory.glob(pattern)
            if path.is_file() and self.extractor.get_handler(path.name) is not None
        )

    def scan_files(self, files: list[Path]) -> ScanSummary:
        """複数ファイルを抽出する

        Args:
            files: 抽出対象のファイルパスのリスト

        Returns:
            抽出結果のサマリー
        """
        summary = ScanSummary(total=len(files))
        completed_count = 0
        lock = Lock()

        def process_file(path: Path) -> ScanEntry:
            """ファイルを処理し、進捗を報告する"""
            nonlocal completed_count
            entry = ScanEntry(path=path, result=self.extractor.extract_result(path.name, path))

            with lock:
                completed_count += 1
                if self.progress_callback:
                    self.progress_callback(completed_count, summary.total)

            return entry

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(process_file, path) for path in files]

            for future in as_completed(futures):
                entry = future.result()
                summary.entries.append(entry)

                if entry.result.is_success:
                    summary.success += 1
                else:
                    summary.failed += 1

        summary.entries.sort(key=lambda e: e.path)
        return summary

    def scan_directory(self, directory: Path, recursive: bool | None = None) -> ScanSummary:
        """ディレクトリ内のカードを抽出する

        Args:
            directory: 対象ディレクトリ
            recursive: サブディレクトリも処理するか（Noneの場合は設定値）

        Returns:
            抽出結果のサマリー
        """
        if recursive is None:
            recursive = self.extractor.config.scan.recursive
        return self.scan_files(self.collect_files(directory, recursive))
