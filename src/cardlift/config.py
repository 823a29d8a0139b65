"""Configuration module for cardlift."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from cardlift.parser.png import MAX_PAYLOAD_CHARS

class ConfigError(Exception):
    """設定ファイル読み込みエラー"""

    pass

@dataclass(frozen=True)
class ScannerConfig:
    """PNGマーカー走査設定"""

    max_payload_chars: int = MAX_PAYLOAD_CHARS

@dataclass(frozen=True)
class AvatarConfig:
    """アバター設定"""

    include: bool = True

@dataclass(frozen=True)
class ScanConfig:
    """ディレクトリ一括抽出設定"""

    recursive: bool = True
    max_workers: int | None = None

@dataclass(frozen=True)
class ExtractorConfig:
    """ルート設定"""

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    avatar: AvatarConfig = field(default_factory=AvatarConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)

def load_config(path: Path) -> ExtractorConfig:
    """設定ファイルを読み込む

    Args:
        path: 設定ファイルパス

    Returns:
        ExtractorConfig: 読み込んだ設定（デフォルトとマージ済み）

    Raises:
        ConfigError: ファイル読み込みまたはパースエラー
    """
    if not path.exists():
        raise ConfigError(f"設定ファイルが見つかりません: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML解析エラー: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("設定ファイルはYAMLのマッピング形式である必要があります")

    default = get_default_config()

    return ExtractorConfig(
        scanner=_merge_scanner_config(data.get("scanner", {}), default.scanner),
        avatar=_merge_avatar_config(data.get("avatar", {}), default.avatar),
        scan=_merge_scan_config(data.get("scan", {}), default.scan),
    )

def get_default_config() -> ExtractorConfig:
    """デフォルト設定を取得する"""
    return ExtractorConfig()

def _merge_scanner_config(data: dict[str, Any], default: ScannerConfig) -> ScannerConfig:
    """走査設定をマージする"""
    if not isinstance(data, dict):
        return default
    max_payload_chars = data.get("max_payload_chars", default.max_payload_chars)
    if not _is_positive_int(max_payload_chars):
        raise ConfigError(f"max_payload_charsは正の整数である必要があります: {max_payload_chars!r}")
    return ScannerConfig(max_payload_chars=max_payload_chars)

def _merge_avatar_config(data: dict[str, Any], default: AvatarConfig) -> AvatarConfig:
    """アバター設定をマージする"""
    if not isinstance(data, dict):
        return default
    return AvatarConfig(include=bool(data.get("include", default.include)))

def _merge_scan_config(data: dict[str, Any], default: ScanConfig) -> ScanConfig:
    """一括抽出設定をマージする"""
    if not isinstance(data, dict):
        return default
    max_workers = data.get("max_workers", default.max_workers)
    if max_workers is not None and not _is_positive_int(max_workers):
        raise ConfigError(f"max_workersは正の整数である必要があります: {max_workers!r}")
    return ScanConfig(
        recursive=bool(data.get("recursive", default.recursive)),
        max_workers=max_workers,
    )

def _is_positive_int(value: Any) -> bool:
    """正の整数か（boolは除く）"""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
