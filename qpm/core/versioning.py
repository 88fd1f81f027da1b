"""语义化版本与版本范围匹配

版本号必须是严格的 semver（如 1.2.0）；版本范围使用 npm 风格表达式
（``*``、``^1.2.0``、``~1.2``、``1.x``、``>=1.0.0 <2.0.0``），由
semantic_version.NpmSpec 求值。空串与字面量 "any" 视同 ``*``。
"""

from __future__ import annotations

from collections.abc import Iterable

import semantic_version

from qpm.core.exceptions import ValidationError

ANY_RANGE = "*"


def parse_version(text: str) -> semantic_version.Version:
    """解析版本号，非法时抛出 ValidationError"""
    try:
        return semantic_version.Version(str(text).strip())
    except ValueError as e:
        raise ValidationError(f"无效的语义化版本号: '{text}'") from e


def normalize_range(text: str | None) -> str:
    """空范围 / "any" 归一化为 ``*``"""
    if text is None:
        return ANY_RANGE
    text = str(text).strip()
    if not text or text.lower() == "any":
        return ANY_RANGE
    return text


def parse_range(text: str | None) -> semantic_version.NpmSpec:
    """解析版本范围表达式，非法时抛出 ValidationError"""
    expr = normalize_range(text)
    try:
        return semantic_version.NpmSpec(expr)
    except ValueError as e:
        raise ValidationError(f"无效的版本范围: '{text}'") from e


def satisfies(version: str, range_expr: str | None) -> bool:
    """判断版本是否满足范围"""
    return parse_range(range_expr).match(parse_version(version))


def select_highest(
    versions: Iterable[str], ranges: Iterable[str | None],
) -> str | None:
    """从候选版本中选出同时满足全部范围的最高版本（按数值比较）"""
    specs = [parse_range(r) for r in ranges]
    best: semantic_version.Version | None = None
    for raw in versions:
        try:
            ver = parse_version(raw)
        except ValidationError:
            continue
        if all(spec.match(ver) for spec in specs) and (best is None or ver > best):
            best = ver
    return str(best) if best is not None else None
