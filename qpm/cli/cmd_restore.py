"""CLI — 解析、发布与查询命令"""

from __future__ import annotations

import click

from qpm.cli import _svc
from qpm.core.properties import SUPPORTED_PROPERTIES


def register(group: click.Group) -> None:
    group.add_command(restore)
    group.add_command(publish)
    group.add_command(versions)
    group.add_command(properties_list)


@click.command()
@click.option("--refresh", is_flag=True, help="已满足的依赖也重新放置二进制")
def restore(refresh: bool) -> None:
    """解析依赖闭包、下载二进制并更新锁文件"""
    result = _svc().resolver.resolve(refresh=refresh)
    for label in result.resolved:
        click.echo(f"  + {label}")
    for label in result.pruned:
        click.echo(f"  - {label}")
    click.echo(
        f"完成: 新解析 {len(result.resolved)}，已满足 {len(result.satisfied)}，"
        f"移除 {len(result.pruned)}"
    )


@click.command()
@click.option("--token", envvar="QPM_TOKEN", default=None, help="发布凭据（或环境变量 QPM_TOKEN）")
def publish(token: str | None) -> None:
    """将本工程清单发布到远程仓库"""
    svc = _svc()
    if token:
        svc.config.registry_token = token
    manifest = svc.publisher.publish()
    click.echo(f"已发布: {manifest.id}@{manifest.version}")


@click.command()
@click.argument("package_id")
@click.option("--limit", default=None, type=int, help="最多列出的版本数")
def versions(package_id: str, limit: int | None) -> None:
    """列出远程仓库中某个包的已发布版本"""
    for pair in _svc().registry.list_versions(package_id, limit=limit):
        click.echo(f"  {pair.version}")


@click.command(name="properties-list")
def properties_list() -> None:
    """列出受支持的扩展属性（additionalData）"""
    for prop in SUPPORTED_PROPERTIES:
        click.echo(
            f"  {prop.key:16s} [{prop.target:10s}] {prop.shape:6s}  {prop.description}"
        )
