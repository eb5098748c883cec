"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True, slots=True)
class NaturalSize:
    """从原始字节中探测到的图片尺寸。"""

    width: int
    height: int


@dataclass(frozen=True, slots=True)
class TargetSize:
    """请求编解码器输出的尺寸，0 表示不指定。"""

    width: int = 0
    height: int = 0

    @property
    def is_unset(self) -> bool:
        return self.width == 0 and self.height == 0


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的处理结果（用于汇总/日志）。"""

    source_path: Path
    status: str
    output_path: Optional[Path] = None
    message: Optional[str] = None
    target_size: Optional[TargetSize] = None
    bytes_written: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return not self.status.startswith("error")


@dataclass(slots=True)
class BatchResult:
    """一次批处理的产出。"""

    succeeded: list[FileOutcome] = field(default_factory=list)
    failed: list[FileOutcome] = field(default_factory=list)

    def all_outcomes(self) -> list[FileOutcome]:
        """返回所有结果记录。"""

        return [*self.succeeded, *self.failed]


@dataclass(slots=True)
class ProgressUpdate:
    """批处理过程中的进度信息。"""

    total: int
    completed: int
    message: Optional[str] = None
