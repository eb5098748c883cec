"""单个文件的处理单元：读取、缩放计算、压缩/转换、删除源文件、写出。"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from imgtool.core.config import CompressionParameters, ResizeRule, RunConfiguration
from imgtool.core.exceptions import SAME_FORMAT_ERROR_CODE, CodecError
from imgtool.core.models import FileOutcome, TargetSize
from imgtool.processing import codec
from imgtool.processing.resize import resolve_target_size

LOGGER = logging.getLogger(__name__)


def run_task(input_file: Path, output_file: Path, config: RunConfiguration) -> FileOutcome:
    """处理单个文件，失败时返回带阶段标记的结果而不抛出。

    删除源文件发生在写出之前，删除失败时不会产生输出文件。
    """

    try:
        origin_data = input_file.read_bytes()
    except OSError as exc:
        return _failure(input_file, "error-read", exc)

    params = config.compression
    target_size = None
    if config.resize.rule is not ResizeRule.NO_RESIZE:
        try:
            natural = codec.probe_size(origin_data)
        except CodecError as exc:
            return _failure(input_file, "error-probe", exc)

        target_size = resolve_target_size(
            config.resize,
            natural,
            clamp_enlarge=config.enlarge_policy == "clamp",
        )
        params = dataclasses.replace(
            params,
            width=target_size.width,
            height=target_size.height,
            allow_magnify=not (config.resize.donot_enlarge and config.enlarge_policy == "defer"),
        )
        LOGGER.debug(
            "%s: 原图 %dx%d -> 目标 %dx%d",
            input_file.name,
            natural.width,
            natural.height,
            target_size.width,
            target_size.height,
        )

    if config.dry_run:
        return FileOutcome(
            source_path=input_file,
            status="planned",
            output_path=output_file,
            target_size=target_size,
        )

    try:
        compressed = _compress_or_convert(origin_data, params, config)
    except CodecError as exc:
        return _failure(input_file, "error-codec", exc, target_size)

    if config.delete_origin:
        try:
            input_file.unlink()
        except OSError as exc:
            return _failure(input_file, "error-delete", exc, target_size)

    try:
        output_file.write_bytes(compressed)
    except OSError as exc:
        return _failure(input_file, "error-write", exc, target_size)

    return FileOutcome(
        source_path=input_file,
        status="processed",
        output_path=output_file,
        target_size=target_size,
        bytes_written=len(compressed),
    )


def _compress_or_convert(data: bytes, params: CompressionParameters, config: RunConfiguration) -> bytes:
    if config.target_format is None:
        return codec.compress(data, params)

    try:
        return codec.convert(data, params, config.target_format)
    except CodecError as exc:
        if exc.code != SAME_FORMAT_ERROR_CODE:
            raise
        LOGGER.debug("目标格式与源格式相同，改为直接压缩")
        return codec.compress(data, params)


def _failure(
    input_file: Path,
    status: str,
    exc: BaseException,
    target_size: TargetSize | None = None,
) -> FileOutcome:
    return FileOutcome(
        source_path=input_file,
        status=status,
        message=str(exc),
        target_size=target_size,
        error=exc,
    )
