"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from imgtool.core.config import (
    CompressionParameters,
    GifOptions,
    JpegOptions,
    OutputFormat,
    PngOptions,
    TiffOptions,
    WebpOptions,
    build_resize_directive,
    build_run_configuration,
)
from imgtool.core.exceptions import ImageProcessError, InvalidConfigurationError
from imgtool.core.models import BatchResult, ProgressUpdate
from imgtool.processing.pipeline import process_batch
from imgtool.utils.logging import setup_logging

app = typer.Typer(help="基于 Pillow 的批量图片压缩与格式转换工具。")

LOGGER = logging.getLogger(__name__)


def _parse_target_format(value: Optional[str]) -> Optional[OutputFormat]:
    if value is None:
        return None
    try:
        return OutputFormat.parse(value)
    except InvalidConfigurationError as exc:
        raise typer.BadParameter("可选值: jpg, jpeg, png, gif, webp, tiff") from exc


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


def _print_plan(result: BatchResult, console: Console) -> None:
    table = Table(title="处理计划")
    table.add_column("输入", overflow="fold")
    table.add_column("输出", overflow="fold")
    table.add_column("目标尺寸", no_wrap=True)
    for outcome in result.succeeded:
        size = outcome.target_size
        table.add_row(
            str(outcome.source_path),
            str(outcome.output_path),
            f"{size.width}x{size.height}" if size else "-",
        )
    console.print(table)


@app.command()
def run_cli(  # noqa: PLR0913
    input_path: Path = typer.Option(..., "--input", "-i", help="输入文件或目录"),
    output_path: Path = typer.Option(..., "--output", "-o", help="输出文件或目录"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="输出文件名前缀，不设置时与源文件同名"),
    suffix: Optional[str] = typer.Option(None, "--suffix", "-s", help="输出文件名后缀，不设置时与源文件同名"),
    dry_run: bool = typer.Option(False, "--dry-run", help="只打印处理计划，不输出文件"),
    continue_on_error: bool = typer.Option(False, "--continue-on-error", help="某个文件出错时继续处理剩余文件"),
    skip_if_bigger: bool = typer.Option(False, "--skip-if-bigger", help="输出比源文件大时跳过（暂未生效）"),
    target_format: Optional[str] = typer.Option(
        None,
        "--target-format",
        "-t",
        help="输出格式，不设置时与源文件一致。可选: jpg, jpeg, png, gif, webp, tiff",
    ),
    delete_origin: bool = typer.Option(False, "--delete-origin", help="处理完成后删除源文件"),
    keep_metadata: bool = typer.Option(False, "--keep-metadata", help="保留 EXIF/ICC 元数据"),
    lossless: bool = typer.Option(False, "--lossless", help="使用无损压缩"),
    resize: str = typer.Option(
        "no_resize",
        "--resize",
        help="缩放规则: no_resize | size | scale | short_edge | long_edge | width | height",
    ),
    edge_size: Optional[int] = typer.Option(None, "--edge-size", help="短边或长边的像素值 (short_edge/long_edge)"),
    width: Optional[float] = typer.Option(None, "--width", help="宽度像素 (size/width) 或宽度比例 (scale)"),
    height: Optional[float] = typer.Option(None, "--height", help="高度像素 (size/height) 或高度比例 (scale)"),
    ratio: Optional[float] = typer.Option(None, "--ratio", help="等比缩放比例 (scale)，优先于宽高比例"),
    donot_enlarge: bool = typer.Option(False, "--donot-enlarge", help="原图小于目标尺寸时不放大"),
    keep_aspect_ratio: bool = typer.Option(
        True, "--keep-aspect-ratio/--no-keep-aspect-ratio", help="保持宽高比"
    ),
    enlarge_policy: str = typer.Option(
        "defer", "--enlarge-policy", help="donot_enlarge 的执行位置: defer（交给编码器）或 clamp（计算时限制）"
    ),
    jpeg_quality: int = typer.Option(80, "--jpeg-quality", help="JPEG 质量 0~100"),
    jpeg_chroma_subsampling: str = typer.Option(
        "auto", "--jpeg-chroma-subsampling", help="色度抽样: cs444 | cs422 | cs420 | cs411 | auto"
    ),
    jpeg_progressive: bool = typer.Option(
        True, "--jpeg-progressive/--no-jpeg-progressive", help="输出渐进式 JPEG"
    ),
    png_quality: int = typer.Option(80, "--png-quality", help="PNG 质量 0~100"),
    png_force_zopfli: bool = typer.Option(False, "--png-force-zopfli", help="使用最慢最高的压缩级别"),
    png_optimization_level: int = typer.Option(2, "--png-optimization-level", help="PNG 优化级别 0~6"),
    gif_quality: int = typer.Option(80, "--gif-quality", help="GIF 质量 0~100"),
    webp_quality: int = typer.Option(80, "--webp-quality", help="WebP 质量 0~100"),
    tiff_algorithm: str = typer.Option(
        "deflate", "--tiff-algorithm", help="TIFF 压缩算法: uncompressed | lzw | deflate | packbits"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """压缩并按需转换、缩放图片。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    LOGGER.debug("CLI 参数解析完成")

    try:
        directive = build_resize_directive(
            resize,
            edge_size=edge_size,
            width=width,
            height=height,
            ratio=ratio,
            donot_enlarge=donot_enlarge,
            keep_aspect_ratio=keep_aspect_ratio,
        )
        compression = CompressionParameters(
            jpeg=JpegOptions(
                quality=jpeg_quality,
                chroma_subsampling=jpeg_chroma_subsampling.lower(),
                progressive=jpeg_progressive,
            ),
            png=PngOptions(
                quality=png_quality,
                force_zopfli=png_force_zopfli,
                optimization_level=png_optimization_level,
            ),
            gif=GifOptions(quality=gif_quality),
            webp=WebpOptions(quality=webp_quality),
            tiff=TiffOptions(algorithm=tiff_algorithm.lower()),
            keep_metadata=keep_metadata,
            lossless=lossless,
        )
        config = build_run_configuration(
            input_path.expanduser(),
            output_path.expanduser(),
            compression=compression,
            resize=directive,
            target_format=_parse_target_format(target_format),
            prefix=prefix,
            suffix=suffix,
            continue_on_error=continue_on_error,
            delete_origin=delete_origin,
            dry_run=dry_run,
            skip_if_bigger=skip_if_bigger,
            enlarge_policy=enlarge_policy,
        )
    except InvalidConfigurationError as exc:
        typer.echo(f"配置错误: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    if config.skip_if_bigger:
        LOGGER.warning("--skip-if-bigger 暂未生效，所有结果都会写出")

    console = Console(stderr=True)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    try:
        with progress:
            result = process_batch(config, progress_callback=_build_progress_callback(progress))
    except (ImageProcessError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    if config.dry_run:
        _print_plan(result, Console())
        return

    typer.echo(f"处理完成：成功 {len(result.succeeded)} 个，失败 {len(result.failed)} 个。")


if __name__ == "__main__":
    app()
