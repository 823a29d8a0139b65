"""CLI entry point for cardlift."""

import json
from enum import IntEnum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from cardlift import __version__
from cardlift.card.avatar import AVATAR_SUFFIXES, decode_data_url, inspect_avatar
from cardlift.config import ConfigError, ExtractorConfig, get_default_config, load_config
from cardlift.extractor import CardExtractor
from cardlift.logger import ExtractLogger, LogConfig, VerboseLevel
from cardlift.scanner import CardScanner

app = typer.Typer(help="画像・アーカイブに埋め込まれたキャラクターカードを抽出するCLIツール")
console = Console()


class ExitCode(IntEnum):
    """CLIの終了コード

    ERRORはカードを取り出せなかった場合、INVALID_INPUTは設定ファイルが不正な場合。
    """

    SUCCESS = 0
    ERROR = 1
    INVALID_INPUT = 2


ConfigOption = Annotated[
    Path | None, typer.Option("-c", "--config", help="設定ファイル（YAML）")
]


def _format_size(size_bytes: int) -> str:
    """バイト数を人間が読みやすい形式に変換する"""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def _load_extractor(config_path: Path | None) -> CardExtractor:
    """設定を読み込んでCardExtractorを作成する"""
    config: ExtractorConfig = get_default_config()
    if config_path is not None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(ExitCode.INVALID_INPUT) from e
    return CardExtractor(config)


def _require_file(path: Path) -> None:
    if not path.exists():
        console.print(f"[red]Error: ファイルが見つかりません: {path}[/red]")
        raise typer.Exit(ExitCode.ERROR)
    if not path.is_file():
        console.print(f"[red]Error: ファイルを指定してください: {path}[/red]")
        raise typer.Exit(ExitCode.ERROR)


@app.command()
def info(
    input_path: Annotated[Path, typer.Argument(help="カードファイル（png/json/charx/jpg）")],
    config: ConfigOption = None,
) -> None:
    """カードの内容を表示する"""
    _require_file(input_path)
    extractor = _load_extractor(config)

    result = extractor.extract_result(input_path.name, input_path)
    if not result.is_success or result.info is None:
        error = result.error.value if result.error else "unknown"
        console.print(f"[red]抽出失敗 ({error}): {result.message}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    card = result.info
    table = Table(title="Character Card")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Spec", card.spec.value)
    table.add_row("Spec Version", card.spec_version or "N/A")
    table.add_row("Name", card.name or "[dim](empty)[/dim]")
    table.add_row("Creator", card.creator or "N/A")
    table.add_row(
        "Character Version",
        str(card.character_version) if card.character_version is not None else "N/A",
    )
    table.add_row("Tags", ", ".join(card.tags) if card.tags else "N/A")

    table.add_section()
    table.add_row("Lorebook", "yes" if card.has_lore else "no")
    table.add_row("Emotions", "yes" if card.has_emotion else "no")
    table.add_row("Assets", "yes" if card.has_asset else "no")

    table.add_section()
    if card.avatar_data_url:
        avatar = inspect_avatar(card.avatar_data_url)
        if avatar is not None:
            table.add_row("Avatar", f"{avatar.mime_type} {avatar.width}x{avatar.height}")
            table.add_row("  Size", _format_size(avatar.byte_size))
        else:
            table.add_row("Avatar", "[yellow]画像として認識できません[/yellow]")
    else:
        table.add_row("Avatar", "N/A")

    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def extract(
    input_path: Annotated[Path, typer.Argument(help="カードファイル（png/json/charx/jpg）")],
    output: Annotated[Path | None, typer.Option("-o", "--output", help="出力JSONパス")] = None,
    avatar: Annotated[Path | None, typer.Option(help="アバター画像の出力パス")] = None,
    embed_avatar: Annotated[
        bool, typer.Option(help="JSONにavatarDataUrlを含める")
    ] = False,
    config: ConfigOption = None,
) -> None:
    """カードを正規化JSONとして書き出す"""
    _require_file(input_path)
    extractor = _load_extractor(config)

    result = extractor.extract_result(input_path.name, input_path)
    if not result.is_success or result.info is None:
        error = result.error.value if result.error else "unknown"
        console.print(f"[red]抽出失敗 ({error}): {result.message}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    card = result.info
    text = json.dumps(card.to_dict(include_avatar=embed_avatar), ensure_ascii=False, indent=2)

    if output is None:
        typer.echo(text)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]書き出しました: {output}[/green]")

    if avatar is not None:
        if not card.avatar_data_url:
            console.print("[yellow]警告: このカードにはアバター画像がありません[/yellow]")
        else:
            mime_type, data = decode_data_url(card.avatar_data_url)
            if not avatar.suffix:
                avatar = avatar.with_suffix(AVATAR_SUFFIXES.get(mime_type, ".bin"))
            avatar.parent.mkdir(parents=True, exist_ok=True)
            avatar.write_bytes(data)
            console.print(f"[green]アバターを書き出しました: {avatar}[/green]")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def scan(
    directory: Annotated[Path, typer.Argument(help="対象ディレクトリ")],
    recursive: Annotated[
        bool | None, typer.Option("--recursive/--no-recursive", help="サブディレクトリも処理")
    ] = None,
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="詳細ログ出力")] = 0,
    log_file: Annotated[Path | None, typer.Option(help="ログファイル出力先")] = None,
    config: ConfigOption = None,
) -> None:
    """ディレクトリ内のカードを一括抽出する"""
    if not directory.is_dir():
        console.print(f"[red]Error: ディレクトリを指定してください: {directory}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    extractor = _load_extractor(config)
    log_config = LogConfig(
        verbose_level=VerboseLevel(min(verbose, VerboseLevel.DEBUG)),
        log_file=log_file,
    )

    with ExtractLogger(log_config) as logger:
        scanner = CardScanner(extractor)
        logger.debug(f"走査開始: {directory} (workers={scanner.max_workers})")
        summary = scanner.scan_directory(directory, recursive=recursive)
        if summary.total == 0:
            logger.warning(f"対応するファイルが見つかりません: {directory}")

        table = Table(title="Scan Result")
        table.add_column("File", style="cyan")
        table.add_column("Spec", justify="center")
        table.add_column("Name", style="green")
        table.add_column("Status", justify="center")

        for entry in summary.entries:
            relative = str(entry.path.relative_to(directory))
            logger.log_result(relative, entry.result)
            if entry.result.is_success and entry.result.info is not None:
                card = entry.result.info
                table.add_row(relative, card.spec.value, card.name, "[green]✓[/green]")
            else:
                error = entry.result.error.value if entry.result.error else "unknown"
                table.add_row(relative, "-", "-", f"[red]✗ {error}[/red]")

        console.print(table)
        logger.log_summary(summary)

    raise typer.Exit(ExitCode.SUCCESS)


def version_callback(value: bool) -> None:
    """バージョン表示コールバック"""
    if value:
        typer.echo(f"cardlift {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="バージョンを表示する",
        ),
    ] = False,
) -> None:
    """cardlift CLI - 埋め込みキャラクターカードの抽出"""
    pass
