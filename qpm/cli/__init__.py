"""qpm 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

import click

from qpm import __version__
from qpm.core.config import DEFAULT_CONFIG_FILE, init_config
from qpm.core.exceptions import QPMError
from qpm.services.container import get_container, reset_container
from qpm.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, Any]:
    """解析 key=value 参数对，value 能按 JSON 解析时取解析结果（true / 1 / "x"）"""
    result: dict[str, Any] = {}
    for p in pairs:
        if "=" not in p:
            raise click.BadParameter(f"格式应为 key=value: {p}")
        k, v = p.split("=", 1)
        v = v.strip()
        try:
            result[k.strip()] = json.loads(v)
        except json.JSONDecodeError:
            result[k.strip()] = v
    return result


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default=DEFAULT_CONFIG_FILE,
    show_default=True, help="配置文件路径",
)
def main(config_path: str) -> None:
    """qpm - 原生构建工程的包管理器"""
    setup_logging(
        level=os.getenv("QPM_LOG_LEVEL", "INFO"),
        json_output=os.getenv("QPM_LOG_JSON", "") == "1",
    )
    init_config(config_path)
    reset_container()


def run() -> None:
    """console_scripts 入口：业务异常输出信息后以状态 1 退出"""
    try:
        rc = main.main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.exceptions.Abort:
        click.echo("已取消", err=True)
        sys.exit(1)
    except QPMError as e:
        logger.debug("命令失败", exc_info=True)
        click.echo(str(e), err=True)
        click.secho("失败", fg="red", err=True)
        sys.exit(1)
    sys.exit(rc or 0)


# 注册各领域子命令
from qpm.cli.cmd_config import register as _reg_config  # noqa: E402
from qpm.cli.cmd_dependency import register as _reg_dependency  # noqa: E402
from qpm.cli.cmd_package import register as _reg_package  # noqa: E402
from qpm.cli.cmd_restore import register as _reg_restore  # noqa: E402

_reg_package(main)
_reg_dependency(main)
_reg_restore(main)
_reg_config(main)
