"""CLI — 配置文件命令"""

from __future__ import annotations

import dataclasses

import click

from qpm.cli import _parse_kv_pairs
from qpm.core.config import DEFAULT_CONFIG_FILE, Config, get_config
from qpm.utils.yaml_io import load_yaml, save_yaml


def register(group: click.Group) -> None:
    group.add_command(config)


@click.group()
def config() -> None:
    """查看或修改 qpm.yml"""


@config.command()
def show() -> None:
    """打印当前生效的配置（registry_token 隐藏）"""
    for key, value in get_config().to_dict().items():
        if key == "registry_token" and value:
            value = "******"
        click.echo(f"  {key:16s} {value}")


@config.command(name="set")
@click.argument("pairs", nargs=-1, required=True)
@click.option("--file", "path", default=DEFAULT_CONFIG_FILE, show_default=True, help="配置文件路径")
def set_(pairs: tuple[str, ...], path: str) -> None:
    """写入配置项，格式: key=value（可多个）"""
    known = {f.name for f in dataclasses.fields(Config)}
    updates = _parse_kv_pairs(pairs)
    unknown = sorted(k for k in updates if k not in known)
    if unknown:
        raise click.BadParameter(f"未知配置项: {', '.join(unknown)}")
    data = load_yaml(path)
    data.update(updates)
    save_yaml(path, data)
    for k, v in updates.items():
        click.echo(f"{k} = {v}")
