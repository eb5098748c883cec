"""项目内使用的自定义异常定义。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

SAME_FORMAT_ERROR_CODE = 10407
UNSUPPORTED_FORMAT_ERROR_CODE = 10400
DECODE_ERROR_CODE = 10401
ENCODE_ERROR_CODE = 10402


class ImgToolError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(ImgToolError):
    """配置不合法时抛出，发生在处理任何文件之前。"""


class CodecError(ImgToolError):
    """编解码器返回的错误，带有错误码。"""

    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.args[0]}"


class ImageProcessError(ImgToolError):
    """单个文件处理失败，在批处理快速失败时抛出。"""

    def __init__(self, source_path: Path, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.source_path = source_path
        self.stage = stage

    def __str__(self) -> str:
        return f"处理文件失败 '{self.source_path}': {self.args[0]}"
