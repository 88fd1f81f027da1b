"""JSON 文件统一读写工具

清单、锁文件以及 c_cpp_properties.json / bmbfmod.json 都经由这里读写。
统一 encoding="utf-8"、4 空格缩进、末尾换行、原子写入；
内容未变化时不落盘，保证重复执行不改动文件字节。
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str) -> None:
    """原子写入文件：先写同目录临时文件再 os.replace

    异常:
        OSError: 文件写入或替换失败（临时文件会被清理）
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        # 只捕获普通异常，不拦截 KeyboardInterrupt/SystemExit
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def dumps_json(data: Any) -> str:
    """规范化序列化：4 空格缩进，保留非 ASCII，末尾换行"""
    return json.dumps(data, indent=4, ensure_ascii=False) + "\n"


def load_json(path: str | Path) -> Any:
    """读取 JSON 文件，文件不存在返回 None

    异常:
        json.JSONDecodeError: 内容不是合法 JSON
        UnicodeDecodeError: 内容不是 UTF-8 编码
        OSError: 读取失败
    """
    p = Path(path)
    if not p.exists():
        return None
    with open(p, encoding="utf-8-sig") as f:
        return json.load(f)


def write_if_changed(path: str | Path, content: str) -> bool:
    """内容与磁盘现有内容不同时才原子写入，返回是否写入"""
    p = Path(path)
    if p.exists():
        try:
            if p.read_text(encoding="utf-8") == content:
                logger.debug("内容未变化，跳过写入: %s", p)
                return False
        except UnicodeDecodeError:
            pass
    atomic_write(p, content)
    logger.debug("已写入: %s", p)
    return True


def save_json(path: str | Path, data: Any) -> bool:
    """序列化并写入 JSON 文件（内容未变化时跳过），返回是否写入"""
    return write_if_changed(path, dumps_json(data))
