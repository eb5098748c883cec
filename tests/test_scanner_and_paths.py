"""输入枚举与输出路径推导测试。"""

from __future__ import annotations

from pathlib import Path

import pytest

from imgtool.core.config import build_run_configuration
from imgtool.core.output_manager import OutputManager, derive_output_path, split_filename
from imgtool.core.scanner import collect_input_files


def test_single_file_input_yields_itself(tmp_path: Path) -> None:
    image = tmp_path / "a.png"
    image.write_bytes(b"x")

    assert collect_input_files(image) == [image]


def test_directory_input_lists_direct_regular_files(tmp_path: Path) -> None:
    (tmp_path / "a.png").write_bytes(b"x")
    (tmp_path / "b.jpg").write_bytes(b"x")
    (tmp_path / "notes").write_text("x")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "c.png").write_bytes(b"x")

    files = collect_input_files(tmp_path)

    assert set(files) == {tmp_path / "a.png", tmp_path / "b.jpg", tmp_path / "notes"}


def test_empty_directory_yields_nothing(tmp_path: Path) -> None:
    assert collect_input_files(tmp_path) == []


def test_missing_input_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        collect_input_files(tmp_path / "missing")


def test_prefix_and_suffix_are_applied_around_extension() -> None:
    result = derive_output_path(Path("/in/photo.JPG"), Path("/out"), "sm_", "_v2")

    assert result == Path("/out/sm_photo_v2.JPG")


def test_suffix_is_appended_to_names_without_extension() -> None:
    assert derive_output_path(Path("README"), Path("."), None, "_bak").name == "README_bak"


def test_absent_prefix_and_suffix_keep_name() -> None:
    assert derive_output_path(Path("/in/a.tar.gz"), Path("/out")) == Path("/out/a.tar.gz")
    assert derive_output_path(Path("/in/a.tar.gz"), Path("/out"), suffix="_x") == Path("/out/a.tar_x.gz")


def test_prefix_only() -> None:
    assert derive_output_path(Path("img.png"), Path("/out"), prefix="p_") == Path("/out/p_img.png")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("photo.jpg", ("photo", "jpg")),
        ("README", ("README", None)),
        (".hidden", (".hidden", None)),
        ("a.b.c", ("a.b", "c")),
        ("", ("", None)),
    ],
)
def test_split_filename(name: str, expected: tuple) -> None:
    assert split_filename(name) == expected


def test_single_file_to_file_output_ignores_prefix_and_suffix(tmp_path: Path) -> None:
    image = tmp_path / "a.png"
    image.write_bytes(b"x")
    target = tmp_path / "result.png"
    config = build_run_configuration(image, target, prefix="p_", suffix="_s")

    manager = OutputManager(config)

    assert manager.destination_for(image) == target


def test_single_file_to_existing_directory_derives_name(tmp_path: Path) -> None:
    image = tmp_path / "a.png"
    image.write_bytes(b"x")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    config = build_run_configuration(image, out_dir, prefix="p_", suffix="_s")

    manager = OutputManager(config)

    assert manager.destination_for(image) == out_dir / "p_a_s.png"


def test_batch_output_directory_is_created(tmp_path: Path) -> None:
    source = tmp_path / "in"
    source.mkdir()
    out_dir = tmp_path / "nested" / "out"
    manager = OutputManager(build_run_configuration(source, out_dir))

    manager.prepare()

    assert out_dir.is_dir()


def test_batch_output_must_not_be_a_file(tmp_path: Path) -> None:
    source = tmp_path / "in"
    source.mkdir()
    out_file = tmp_path / "out.png"
    out_file.write_bytes(b"x")
    manager = OutputManager(build_run_configuration(source, out_file))

    with pytest.raises(NotADirectoryError):
        manager.prepare()
