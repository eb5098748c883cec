"""输入文件枚举逻辑。"""

from __future__ import annotations

from pathlib import Path


def collect_input_files(input_path: Path) -> list[Path]:
    """将输入路径展开为待处理文件列表。

    文件输入返回自身；目录输入返回其下一层的所有普通文件，
    顺序与文件系统列举顺序一致，不做排序，也不递归。
    """

    if input_path.is_file():
        return [input_path]

    if not input_path.exists():
        raise FileNotFoundError(f"文件或目录不存在: {input_path}")

    return [candidate for candidate in input_path.iterdir() if candidate.is_file()]
