"""CLI — 包信息命令"""

from __future__ import annotations

import click

from qpm.cli import _svc


def register(group: click.Group) -> None:
    group.add_command(package)


@click.group()
def package() -> None:
    """新建或修改本工程的包信息"""


@package.command()
@click.argument("package_id")
@click.argument("version")
@click.option("--name", default="", help="显示名称（默认与 id 相同）")
@click.option("--shared-dir", default="shared", show_default=True, help="共享头文件目录")
@click.option("--dependencies-dir", default="extern", show_default=True, help="依赖存放目录")
def create(
    package_id: str, version: str, name: str,
    shared_dir: str, dependencies_dir: str,
) -> None:
    """新建包清单（qpm.json）"""
    manifest = _svc().packages.create(
        package_id, version, name=name,
        shared_dir=shared_dir, dependencies_dir=dependencies_dir,
    )
    click.echo(f"已创建: {manifest.id}@{manifest.version}")


@package.command()
@click.option("--id", "new_id", default=None, help="新的包 id")
@click.option("--version", "new_version", default=None, help="新的版本号")
@click.option("--name", "new_name", default=None, help="新的显示名称")
def edit(new_id: str | None, new_version: str | None, new_name: str | None) -> None:
    """修改包 id / 版本 / 显示名称，并同步派生文件"""
    if new_id is None and new_version is None and new_name is None:
        click.echo("请指定 --id、--version 或 --name")
        return
    svc = _svc().packages
    if new_id is not None and svc.set_id(new_id):
        click.echo(f"id -> {new_id}")
    if new_version is not None and svc.set_version(new_version):
        click.echo(f"version -> {new_version}")
    if new_name is not None and svc.set_name(new_name):
        click.echo(f"name -> {new_name}")
