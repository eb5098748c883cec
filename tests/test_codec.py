"""Pillow 编解码器测试。"""

from __future__ import annotations

import io

import pytest
from PIL import Image

from imgtool.core.config import CompressionParameters, GifOptions, JpegOptions, OutputFormat, TiffOptions
from imgtool.core.exceptions import (
    DECODE_ERROR_CODE,
    SAME_FORMAT_ERROR_CODE,
    UNSUPPORTED_FORMAT_ERROR_CODE,
    CodecError,
)
from imgtool.core.models import NaturalSize
from imgtool.processing import codec


def _encode(image: Image.Image, fmt: str, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def test_probe_size_reads_dimensions() -> None:
    data = _encode(Image.new("RGB", (120, 80), "red"), "PNG")

    assert codec.probe_size(data) == NaturalSize(120, 80)


def test_probe_size_rejects_garbage() -> None:
    with pytest.raises(CodecError) as excinfo:
        codec.probe_size(b"not an image")

    assert excinfo.value.code == DECODE_ERROR_CODE


def test_compress_keeps_source_format_and_size() -> None:
    data = _encode(Image.new("RGB", (64, 48), "blue"), "JPEG", quality=100)

    result = _open(codec.compress(data, CompressionParameters(jpeg=JpegOptions(quality=50))))

    assert result.format == "JPEG"
    assert result.size == (64, 48)


def test_compress_resizes_with_one_dimension_unset() -> None:
    data = _encode(Image.new("RGB", (120, 80), "green"), "PNG")

    result = _open(codec.compress(data, CompressionParameters(width=60)))

    assert result.size == (60, 40)


def test_compress_applies_both_dimensions() -> None:
    data = _encode(Image.new("RGB", (120, 80), "green"), "PNG")

    result = _open(codec.compress(data, CompressionParameters(width=30, height=70)))

    assert result.size == (30, 70)


def test_allow_magnify_false_keeps_natural_size() -> None:
    data = _encode(Image.new("RGB", (120, 80), "green"), "PNG")
    params = CompressionParameters(width=240, height=160, allow_magnify=False)

    result = _open(codec.compress(data, params))

    assert result.size == (120, 80)


def test_convert_changes_format() -> None:
    data = _encode(Image.new("RGBA", (32, 32), (255, 0, 0, 128)), "PNG")

    result = _open(codec.convert(data, CompressionParameters(), OutputFormat.JPEG))

    assert result.format == "JPEG"
    assert result.mode == "RGB"


def test_convert_to_same_format_raises_same_format_code() -> None:
    data = _encode(Image.new("RGB", (32, 32), "white"), "PNG")

    with pytest.raises(CodecError) as excinfo:
        codec.convert(data, CompressionParameters(), OutputFormat.PNG)

    assert excinfo.value.code == SAME_FORMAT_ERROR_CODE


@pytest.mark.parametrize(
    ("target", "pillow_format"),
    [
        (OutputFormat.WEBP, "WEBP"),
        (OutputFormat.GIF, "GIF"),
        (OutputFormat.TIFF, "TIFF"),
        (OutputFormat.PNG, "PNG"),
    ],
)
def test_convert_from_jpeg_to_each_format(target: OutputFormat, pillow_format: str) -> None:
    data = _encode(Image.new("RGB", (40, 30), "purple"), "JPEG")

    result = _open(codec.convert(data, CompressionParameters(), target))

    assert result.format == pillow_format
    assert result.size == (40, 30)


@pytest.mark.parametrize("algorithm", ["uncompressed", "lzw", "packbits"])
def test_tiff_algorithms(algorithm: str) -> None:
    data = _encode(Image.new("RGB", (16, 16), "yellow"), "PNG")
    params = CompressionParameters(tiff=TiffOptions(algorithm=algorithm))

    result = _open(codec.convert(data, params, OutputFormat.TIFF))

    assert result.format == "TIFF"


def test_compress_unsupported_source_format() -> None:
    data = _encode(Image.new("RGB", (8, 8), "black"), "BMP")

    with pytest.raises(CodecError) as excinfo:
        codec.compress(data, CompressionParameters())

    assert excinfo.value.code == UNSUPPORTED_FORMAT_ERROR_CODE


def test_convert_accepts_other_source_formats() -> None:
    data = _encode(Image.new("RGB", (8, 8), "black"), "BMP")

    result = _open(codec.convert(data, CompressionParameters(), OutputFormat.PNG))

    assert result.format == "PNG"


def test_animated_gif_frames_are_preserved() -> None:
    frames = [Image.new("RGB", (20, 20), color) for color in ("red", "blue", "green")]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)

    result = _open(codec.compress(buffer.getvalue(), CompressionParameters()))

    assert result.format == "GIF"
    assert getattr(result, "n_frames", 1) == 3


def test_gif_quality_reduces_palette_of_gif_source() -> None:
    gradient = Image.linear_gradient("L").resize((64, 64))
    frames = [
        Image.merge(
            "RGB",
            (gradient.rotate(angle), gradient.rotate(angle + 90), gradient.transpose(Image.Transpose.FLIP_LEFT_RIGHT)),
        )
        for angle in (0, 90, 180)
    ]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)

    low = codec.compress(buffer.getvalue(), CompressionParameters(gif=GifOptions(quality=5)))
    high = codec.compress(buffer.getvalue(), CompressionParameters(gif=GifOptions(quality=100)))

    low_colors = _open(low).convert("RGB").getcolors(1 << 16)
    high_colors = _open(high).convert("RGB").getcolors(1 << 16)
    assert len(low_colors) <= 13
    assert len(low_colors) < len(high_colors)
    assert len(low) < len(high)
    assert getattr(_open(low), "n_frames", 1) == 3


def test_decompression_bomb_maps_to_decode_error(monkeypatch: pytest.MonkeyPatch) -> None:
    data = _encode(Image.new("RGB", (100, 100), "red"), "PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(CodecError) as excinfo:
        codec.compress(data, CompressionParameters())

    assert excinfo.value.code == DECODE_ERROR_CODE


def test_metadata_is_dropped_unless_kept() -> None:
    if not hasattr(Image, "Exif"):
        pytest.skip("当前 Pillow 版本不支持写入 EXIF 数据")

    exif = Image.Exif()
    exif[0x010F] = "imgtool-test"
    data = _encode(Image.new("RGB", (16, 16), "red"), "JPEG", exif=exif.tobytes())

    stripped = _open(codec.compress(data, CompressionParameters()))
    kept = _open(codec.compress(data, CompressionParameters(keep_metadata=True)))

    assert not stripped.info.get("exif")
    assert kept.getexif().get(0x010F) == "imgtool-test"


def test_output_size_derivation() -> None:
    natural = NaturalSize(width=100, height=50)

    assert codec.output_size(natural, CompressionParameters()) == (100, 50)
    assert codec.output_size(natural, CompressionParameters(height=25)) == (50, 25)
    assert codec.output_size(natural, CompressionParameters(width=1)) == (1, 1)
    assert codec.output_size(natural, CompressionParameters(width=200, allow_magnify=False)) == (100, 50)
