"""基于 Pillow 的图片编解码器：尺寸探测、压缩与格式转换。"""

from __future__ import annotations

import io
import logging
from typing import Optional

from PIL import Image, ImageSequence, UnidentifiedImageError

from imgtool.core.config import CompressionParameters, OutputFormat
from imgtool.core.exceptions import (
    DECODE_ERROR_CODE,
    ENCODE_ERROR_CODE,
    SAME_FORMAT_ERROR_CODE,
    UNSUPPORTED_FORMAT_ERROR_CODE,
    CodecError,
)
from imgtool.core.models import NaturalSize

LOGGER = logging.getLogger(__name__)

PILLOW_FORMATS = {
    OutputFormat.JPEG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.GIF: "GIF",
    OutputFormat.WEBP: "WEBP",
    OutputFormat.TIFF: "TIFF",
}

SOURCE_FORMATS = {
    "JPEG": OutputFormat.JPEG,
    "MPO": OutputFormat.JPEG,
    "PNG": OutputFormat.PNG,
    "GIF": OutputFormat.GIF,
    "WEBP": OutputFormat.WEBP,
    "TIFF": OutputFormat.TIFF,
}

CHROMA_SUBSAMPLING = {
    "cs444": "4:4:4",
    "cs422": "4:2:2",
    "cs420": "4:2:0",
    "cs411": "4:1:1",
    "auto": None,
}

TIFF_COMPRESSION = {
    "uncompressed": None,
    "lzw": "tiff_lzw",
    "deflate": "tiff_adobe_deflate",
    "packbits": "packbits",
}

METADATA_KEYS = ("exif", "icc_profile", "xmp", "XML:com.adobe.xmp")


def probe_size(data: bytes) -> NaturalSize:
    """只解析文件头，返回原图宽高。"""

    with _open(data) as image:
        return NaturalSize(width=image.width, height=image.height)


def compress(data: bytes, params: CompressionParameters) -> bytes:
    """按源格式重新编码压缩。"""

    with _open(data) as image:
        source_format = _source_format(image)
        if source_format is None:
            raise CodecError(f"不支持的图片格式: {image.format}", UNSUPPORTED_FORMAT_ERROR_CODE)
        return _encode(image, params, source_format)


def convert(data: bytes, params: CompressionParameters, target_format: OutputFormat) -> bytes:
    """转换为目标格式；目标格式与源格式相同时抛出 10407 错误。"""

    with _open(data) as image:
        if _source_format(image) is target_format:
            raise CodecError("输出格式与源格式相同", SAME_FORMAT_ERROR_CODE)
        return _encode(image, params, target_format)


def output_size(natural: NaturalSize, params: CompressionParameters) -> tuple[int, int]:
    """计算实际输出尺寸。

    宽高均为 0 时保持原尺寸；只给出一边时另一边按比例推导；
    不允许放大且请求尺寸超出原图时保持原尺寸。
    """

    natural_w, natural_h = natural.width, natural.height
    width, height = params.width, params.height

    if width == 0 and height == 0:
        return natural_w, natural_h
    if width == 0:
        width = max(1, int(natural_w * height / natural_h))
    elif height == 0:
        height = max(1, int(natural_h * width / natural_w))

    if not params.allow_magnify and (width > natural_w or height > natural_h):
        LOGGER.debug("请求尺寸 %dx%d 超出原图 %dx%d，保持原尺寸", width, height, natural_w, natural_h)
        return natural_w, natural_h

    return width, height


def _open(data: bytes) -> Image.Image:
    try:
        return Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise CodecError(f"无法识别图像数据: {exc}", DECODE_ERROR_CODE) from exc


def _source_format(image: Image.Image) -> Optional[OutputFormat]:
    return SOURCE_FORMATS.get(image.format or "")


def _encode(image: Image.Image, params: CompressionParameters, target_format: OutputFormat) -> bytes:
    size = output_size(NaturalSize(width=image.width, height=image.height), params)

    try:
        frames = _prepare_frames(image, size, target_format, params)
    except (Image.DecompressionBombError, OSError, ValueError) as exc:
        raise CodecError(f"解码失败: {exc}", DECODE_ERROR_CODE) from exc

    save_params = _save_params(image, params, target_format)
    if len(frames) > 1:
        save_params.update(save_all=True, append_images=frames[1:])

    buffer = io.BytesIO()
    try:
        frames[0].save(buffer, format=PILLOW_FORMATS[target_format], **save_params)
    except (OSError, ValueError, KeyError) as exc:
        raise CodecError(f"编码失败: {exc}", ENCODE_ERROR_CODE) from exc
    finally:
        for frame in frames:
            frame.close()

    return buffer.getvalue()


def _prepare_frames(
    image: Image.Image,
    size: tuple[int, int],
    target_format: OutputFormat,
    params: CompressionParameters,
) -> list[Image.Image]:
    """解码所需的帧并完成缩放与模式转换。"""

    if target_format is OutputFormat.GIF and getattr(image, "n_frames", 1) > 1:
        frames = [frame.copy() for frame in ImageSequence.Iterator(image)]
    else:
        frames = [image.copy()]

    if size != image.size:
        frames = [frame.resize(size, Image.LANCZOS) for frame in frames]

    frames = [_convert_mode(frame, target_format) for frame in frames]

    if not params.keep_metadata:
        # 部分插件会默认写出 info 中的元数据
        for frame in frames:
            for key in METADATA_KEYS:
                frame.info.pop(key, None)

    if not params.lossless:
        if target_format is OutputFormat.PNG and params.png.quality < 100:
            frames = [_quantize(frame, params.png.quality) for frame in frames]
        elif target_format is OutputFormat.GIF and params.gif.quality < 100:
            frames = [_quantize(frame, params.gif.quality) for frame in frames]

    return frames


def _convert_mode(frame: Image.Image, target_format: OutputFormat) -> Image.Image:
    """将帧转换为目标格式可写入的颜色模式。"""

    has_alpha = frame.mode in {"RGBA", "LA", "PA"} or (frame.mode == "P" and "transparency" in frame.info)

    if target_format is OutputFormat.JPEG:
        if frame.mode in {"L", "RGB", "CMYK"}:
            return frame
        if has_alpha:
            # 透明区域混合白色背景
            rgba = frame.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            return background
        return frame.convert("RGB")

    if target_format is OutputFormat.WEBP:
        if frame.mode in {"RGB", "RGBA"}:
            return frame
        return frame.convert("RGBA" if has_alpha else "RGB")

    if frame.mode == "CMYK":
        return frame.convert("RGB")

    return frame


def _quantize(frame: Image.Image, quality: int) -> Image.Image:
    """按质量降低调色板颜色数。

    调色板和灰度帧先展开为 RGB/RGBA 再重新量化，其余模式原样返回。
    """

    if frame.mode in {"1", "L", "LA", "P", "PA"}:
        has_alpha = frame.mode in {"LA", "PA"} or "transparency" in frame.info
        frame = frame.convert("RGBA" if has_alpha else "RGB")
    elif frame.mode not in {"RGB", "RGBA"}:
        return frame
    colors = max(2, min(256, round(256 * quality / 100)))
    return frame.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)


def _save_params(image: Image.Image, params: CompressionParameters, target_format: OutputFormat) -> dict:
    save_params: dict = {}

    if params.keep_metadata:
        exif = image.info.get("exif")
        icc_profile = image.info.get("icc_profile")
        if exif and target_format in {OutputFormat.JPEG, OutputFormat.PNG, OutputFormat.WEBP}:
            save_params["exif"] = exif
        if icc_profile and target_format is not OutputFormat.GIF:
            save_params["icc_profile"] = icc_profile

    if target_format is OutputFormat.JPEG:
        jpeg = params.jpeg
        save_params.update(
            quality=100 if params.lossless else jpeg.quality,
            optimize=True,
            progressive=jpeg.progressive,
        )
        subsampling = CHROMA_SUBSAMPLING[jpeg.chroma_subsampling]
        if subsampling is not None:
            save_params["subsampling"] = subsampling
    elif target_format is OutputFormat.PNG:
        png = params.png
        save_params.update(
            compress_level=min(9, 1 + png.optimization_level * 4 // 3),
            optimize=png.force_zopfli,
        )
    elif target_format is OutputFormat.GIF:
        save_params["optimize"] = True
    elif target_format is OutputFormat.WEBP:
        save_params.update(quality=params.webp.quality, lossless=params.lossless, method=6)
    elif target_format is OutputFormat.TIFF:
        compression = TIFF_COMPRESSION[params.tiff.algorithm]
        if compression is not None:
            save_params["compression"] = compression

    return save_params
