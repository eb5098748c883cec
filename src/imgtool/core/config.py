"""压缩/转换任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from imgtool.core.exceptions import InvalidConfigurationError

CHROMA_SUBSAMPLING_CHOICES = ("cs444", "cs422", "cs420", "cs411", "auto")
TIFF_ALGORITHM_CHOICES = ("uncompressed", "lzw", "deflate", "packbits")
ENLARGE_POLICIES = ("defer", "clamp")


class OutputFormat(str, Enum):
    """支持输出的图片格式。"""

    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    TIFF = "tiff"

    @classmethod
    def parse(cls, value: str) -> "OutputFormat":
        lowered = value.strip().lower()
        if lowered == "jpg":
            return cls.JPEG
        try:
            return cls(lowered)
        except ValueError as exc:
            raise InvalidConfigurationError(f"未知的输出格式: '{value}'") from exc


class ResizeRule(str, Enum):
    """尺寸调整规则。"""

    NO_RESIZE = "no_resize"
    SIZE = "size"
    SCALE = "scale"
    SHORT_EDGE = "short_edge"
    LONG_EDGE = "long_edge"
    WIDTH = "width"
    HEIGHT = "height"

    @classmethod
    def parse(cls, value: str) -> "ResizeRule":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise InvalidConfigurationError(f"未知的缩放规则: '{value}'") from exc


@dataclass(frozen=True, slots=True)
class ResizeDirective:
    """解析并校验后的缩放指令。

    当前规则用不到的字段保持默认值，解析器会忽略它们。
    """

    rule: ResizeRule = ResizeRule.NO_RESIZE
    edge_size: int = 0
    width: float = 0.0
    height: float = 0.0
    ratio: float = 0.0
    donot_enlarge: bool = False
    keep_aspect_ratio: bool = True


@dataclass(frozen=True, slots=True)
class JpegOptions:
    quality: int = 80
    chroma_subsampling: str = "auto"
    progressive: bool = True


@dataclass(frozen=True, slots=True)
class PngOptions:
    quality: int = 80
    force_zopfli: bool = False
    optimization_level: int = 2


@dataclass(frozen=True, slots=True)
class GifOptions:
    quality: int = 80


@dataclass(frozen=True, slots=True)
class WebpOptions:
    quality: int = 80


@dataclass(frozen=True, slots=True)
class TiffOptions:
    algorithm: str = "deflate"


@dataclass(frozen=True, slots=True)
class CompressionParameters:
    """传给编解码器的参数模板，每个文件复制一份后再写入宽高。

    width/height 为 0 表示不指定，由编解码器保持或按比例推导。
    """

    jpeg: JpegOptions = field(default_factory=JpegOptions)
    png: PngOptions = field(default_factory=PngOptions)
    gif: GifOptions = field(default_factory=GifOptions)
    webp: WebpOptions = field(default_factory=WebpOptions)
    tiff: TiffOptions = field(default_factory=TiffOptions)
    keep_metadata: bool = False
    lossless: bool = False
    width: int = 0
    height: int = 0
    allow_magnify: bool = True


@dataclass(frozen=True, slots=True)
class RunConfiguration:
    """单次运行的配置集合，构建后在整个运行期间不可变。"""

    input_path: Path
    output_path: Path
    compression: CompressionParameters = field(default_factory=CompressionParameters)
    resize: ResizeDirective = field(default_factory=ResizeDirective)
    target_format: Optional[OutputFormat] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    continue_on_error: bool = False
    delete_origin: bool = False
    dry_run: bool = False
    skip_if_bigger: bool = False
    enlarge_policy: str = "defer"  # defer | clamp


def build_resize_directive(
    rule: ResizeRule | str,
    *,
    edge_size: Optional[int] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    ratio: Optional[float] = None,
    donot_enlarge: bool = False,
    keep_aspect_ratio: bool = True,
) -> ResizeDirective:
    """校验缩放参数组合并生成指令，只填充当前规则需要的字段。"""

    if isinstance(rule, str):
        rule = ResizeRule.parse(rule)

    for name, value in (("edge_size", edge_size), ("w", width), ("h", height), ("ratio", ratio)):
        if value is not None and value < 0:
            raise InvalidConfigurationError(f"{name} 不能为负数: {value}")

    populated: dict[str, float | int] = {}

    if rule is ResizeRule.SIZE:
        if width is None or height is None:
            raise InvalidConfigurationError("缩放规则为 `size` 时必须同时指定 width 和 height")
        populated.update(width=float(width), height=float(height))
    elif rule is ResizeRule.SCALE:
        if ratio is not None:
            populated.update(ratio=float(ratio))
        elif width is None or height is None:
            raise InvalidConfigurationError("缩放规则为 `scale` 且未指定 ratio 时必须同时指定 width 和 height")
        else:
            populated.update(width=float(width), height=float(height))
    elif rule in (ResizeRule.SHORT_EDGE, ResizeRule.LONG_EDGE):
        if edge_size is None:
            raise InvalidConfigurationError("缩放规则为 `short_edge` 或 `long_edge` 时必须指定 edge_size")
        populated.update(edge_size=int(edge_size))
    elif rule is ResizeRule.WIDTH:
        if width is None:
            raise InvalidConfigurationError("缩放规则为 `width` 时必须指定 width")
        populated.update(width=float(width))
    elif rule is ResizeRule.HEIGHT:
        if height is None:
            raise InvalidConfigurationError("缩放规则为 `height` 时必须指定 height")
        populated.update(height=float(height))

    return ResizeDirective(
        rule=rule,
        donot_enlarge=donot_enlarge,
        keep_aspect_ratio=keep_aspect_ratio,
        **populated,
    )


def validate_compression_parameters(params: CompressionParameters) -> None:
    """校验各输出格式的参数取值范围。"""

    qualities = {
        "jpeg.quality": params.jpeg.quality,
        "png.quality": params.png.quality,
        "gif.quality": params.gif.quality,
        "webp.quality": params.webp.quality,
    }
    for name, value in qualities.items():
        if not 0 <= value <= 100:
            raise InvalidConfigurationError(f"{name} 必须在 0~100 之间: {value}")

    if not 0 <= params.png.optimization_level <= 6:
        raise InvalidConfigurationError(
            f"png.optimization_level 必须在 0~6 之间: {params.png.optimization_level}"
        )
    if params.jpeg.chroma_subsampling not in CHROMA_SUBSAMPLING_CHOICES:
        raise InvalidConfigurationError(f"未知的色度抽样: {params.jpeg.chroma_subsampling}")
    if params.tiff.algorithm not in TIFF_ALGORITHM_CHOICES:
        raise InvalidConfigurationError(f"未知的 TIFF 压缩算法: {params.tiff.algorithm}")
    if params.width < 0 or params.height < 0:
        raise InvalidConfigurationError("目标宽高不能为负数")


def build_run_configuration(
    input_path: Path,
    output_path: Path,
    *,
    compression: Optional[CompressionParameters] = None,
    resize: Optional[ResizeDirective] = None,
    target_format: OutputFormat | str | None = None,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
    continue_on_error: bool = False,
    delete_origin: bool = False,
    dry_run: bool = False,
    skip_if_bigger: bool = False,
    enlarge_policy: str = "defer",
) -> RunConfiguration:
    """组装并校验运行配置，所有配置错误都在这里抛出。"""

    compression = compression or CompressionParameters()
    validate_compression_parameters(compression)

    if enlarge_policy not in ENLARGE_POLICIES:
        raise InvalidConfigurationError(f"未知的放大策略: {enlarge_policy}")

    if isinstance(target_format, str):
        target_format = OutputFormat.parse(target_format)

    return RunConfiguration(
        input_path=input_path,
        output_path=output_path,
        compression=compression,
        resize=resize or ResizeDirective(),
        target_format=target_format,
        prefix=prefix or None,
        suffix=suffix or None,
        continue_on_error=continue_on_error,
        delete_origin=delete_origin,
        dry_run=dry_run,
        skip_if_bigger=skip_if_bigger,
        enlarge_policy=enlarge_policy,
    )
