"""处理流水线：枚举输入、逐个处理文件并汇总结果。"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from imgtool.core.config import RunConfiguration
from imgtool.core.exceptions import ImageProcessError
from imgtool.core.models import BatchResult, ProgressUpdate
from imgtool.core.output_manager import OutputManager
from imgtool.core.scanner import collect_input_files
from imgtool.processing.worker import run_task

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def process_batch(config: RunConfiguration, progress_callback: ProgressCallback = None) -> BatchResult:
    """批量处理入口，按枚举顺序串行处理每个文件。

    未开启 continue_on_error 时，第一个失败的文件会以
    :class:`ImageProcessError` 终止整个运行，后续文件不再处理；
    开启后失败只记录日志，运行仍然视为成功完成。输入为单个文件时
    continue_on_error 不生效，失败总是抛出。
    """

    input_files = collect_input_files(config.input_path)
    total = len(input_files)
    LOGGER.info("发现 %d 个待处理文件", total)

    output_manager = OutputManager(config)
    output_manager.prepare(create=not config.dry_run)

    result = BatchResult()

    if total == 0:
        _emit_progress(progress_callback, completed=0, total=0, message="没有需要处理的文件")
        return result

    for completed, input_file in enumerate(input_files, start=1):
        output_file = output_manager.destination_for(input_file)
        outcome = run_task(input_file, output_file, config)

        if outcome.ok:
            result.succeeded.append(outcome)
            _emit_progress(progress_callback, completed, total, f"完成 {input_file.name}")
            continue

        if not config.continue_on_error or output_manager.single_file:
            raise ImageProcessError(input_file, outcome.message or outcome.status, outcome.status) from outcome.error

        LOGGER.error("处理文件失败 '%s': %s", input_file, outcome.message)
        result.failed.append(outcome)
        _emit_progress(progress_callback, completed, total, f"失败 {input_file.name}")

    LOGGER.info("处理完成：成功 %d 个，失败 %d 个", len(result.succeeded), len(result.failed))
    return result


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message))
