"""CLI — 依赖声明命令"""

from __future__ import annotations

import click

from qpm.cli import _parse_kv_pairs, _svc


def register(group: click.Group) -> None:
    group.add_command(dependency)


@click.group()
def dependency() -> None:
    """增删清单中的依赖声明"""


@dependency.command()
@click.argument("dependency_id")
@click.option("--version", "version_range", default="*", show_default=True, help="版本范围")
@click.option(
    "--additional-data", "additional_data", multiple=True,
    help="扩展属性，格式: key=value（可多次指定）",
)
def add(dependency_id: str, version_range: str, additional_data: tuple[str, ...]) -> None:
    """添加依赖（不会立即解析，之后执行 qpm restore）"""
    spec = _svc().dependencies.add(
        dependency_id, version_range, _parse_kv_pairs(additional_data) or None,
    )
    click.echo(f"依赖: {spec.id} ({spec.version_range})")


@dependency.command()
@click.argument("dependency_id")
def remove(dependency_id: str) -> None:
    """删除依赖，并清理锁文件与 Android.mk 中的对应内容"""
    if _svc().dependencies.remove(dependency_id):
        click.echo(f"已删除: {dependency_id}")
    else:
        click.echo(f"清单中没有该依赖: {dependency_id}")
