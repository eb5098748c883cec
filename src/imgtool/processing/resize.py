"""缩放指令到目标像素尺寸的解析。"""

from __future__ import annotations

from imgtool.core.config import ResizeDirective, ResizeRule
from imgtool.core.models import NaturalSize, TargetSize


def resolve_target_size(
    directive: ResizeDirective,
    natural: NaturalSize,
    *,
    clamp_enlarge: bool = False,
) -> TargetSize:
    """根据缩放指令和原图尺寸计算目标宽高。

    浮点计算后直接截断为整数像素，不做四舍五入。
    `donot_enlarge` 默认只作为编解码器的提示；
    仅当 ``clamp_enlarge`` 为真时才在这里限制目标尺寸不超过原图。
    """

    width, height = _resolve(directive, natural)
    if clamp_enlarge and directive.donot_enlarge:
        width, height = _clamp_to_natural(width, height, natural)
    return TargetSize(width=width, height=height)


def _resolve(directive: ResizeDirective, natural: NaturalSize) -> tuple[int, int]:
    rule = directive.rule
    width = 0
    height = 0

    if rule is ResizeRule.SIZE:
        width = int(directive.width)
        height = int(directive.height)

    elif rule is ResizeRule.SCALE:
        if directive.ratio != 0:
            width = int(natural.width * directive.ratio)
            height = int(natural.height * directive.ratio)
        else:
            width = int(natural.width * directive.width)
            height = int(natural.height * directive.height)

    elif rule in (ResizeRule.SHORT_EDGE, ResizeRule.LONG_EDGE):
        # 宽高相等时走高度分支
        if rule is ResizeRule.SHORT_EDGE:
            edge_is_width = natural.width < natural.height
        else:
            edge_is_width = natural.width > natural.height

        edge = directive.edge_size
        if edge_is_width:
            width = edge
            if directive.keep_aspect_ratio:
                height = _scale(natural.height, edge, natural.width)
        else:
            height = edge
            if directive.keep_aspect_ratio:
                width = _scale(natural.width, edge, natural.height)

    elif rule is ResizeRule.WIDTH:
        width = int(directive.width)
        if not directive.keep_aspect_ratio:
            height = natural.height

    elif rule is ResizeRule.HEIGHT:
        height = int(directive.height)
        if not directive.keep_aspect_ratio:
            width = natural.width

    return width, height


def _scale(other: int, edge: int, reference: int) -> int:
    if reference == 0:
        return 0
    return int(edge * other / reference)


def _clamp_to_natural(width: int, height: int, natural: NaturalSize) -> tuple[int, int]:
    """等比缩小已指定的维度，使其不超过原图尺寸。"""

    limits = []
    if width and natural.width:
        limits.append((natural.width, width))
    if height and natural.height:
        limits.append((natural.height, height))

    if not limits:
        return width, height

    numerator, denominator = min(limits, key=lambda pair: pair[0] / pair[1])
    if numerator >= denominator:
        return width, height

    return int(width * numerator / denominator), int(height * numerator / denominator)
