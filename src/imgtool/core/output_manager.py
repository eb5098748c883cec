"""输出路径推导与输出位置管理模块。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from imgtool.core.config import RunConfiguration

LOGGER = logging.getLogger(__name__)


def derive_output_path(
    input_file: Path,
    output_dir: Path,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
) -> Path:
    """根据前缀/后缀生成输出目录下的文件路径。

    前缀加在完整文件名前；后缀插在最后一个扩展名之前，
    没有扩展名时直接追加到文件名末尾。
    """

    filename = input_file.name
    if prefix:
        filename = f"{prefix}{filename}"

    if suffix:
        stem, ext = split_filename(filename)
        if ext is None:
            filename = f"{filename}{suffix}"
        else:
            filename = f"{stem}{suffix}.{ext}"

    return output_dir / filename


def split_filename(filename: str) -> Tuple[str, Optional[str]]:
    """按最后一个 `.` 拆分文件名；以 `.` 开头且无其他点的文件视为无扩展名。"""

    index = filename.rfind(".")
    if index <= 0:
        return filename, None
    return filename[:index], filename[index + 1 :]


class OutputManager:
    """负责检查输出位置并为每个输入文件确定输出路径。"""

    def __init__(self, config: RunConfiguration) -> None:
        self.config = config
        self.output_path = config.output_path
        self.single_file = config.input_path.is_file()

    def prepare(self, *, create: bool = True) -> None:
        """批处理时确保输出为目录，必要时创建。"""

        if self.single_file:
            return

        if self.output_path.is_file():
            raise NotADirectoryError(f"输入为目录时输出也必须是目录，但给定的是文件: {self.output_path}")

        if create and not self.output_path.exists():
            LOGGER.info("创建输出目录: %s", self.output_path)
            self.output_path.mkdir(parents=True, exist_ok=True)

    def destination_for(self, input_file: Path) -> Path:
        """单文件且输出不是目录时直接使用输出路径，否则在输出目录下推导文件名。"""

        if self.single_file and not self.output_path.is_dir():
            return self.output_path

        return derive_output_path(input_file, self.output_path, self.config.prefix, self.config.suffix)
