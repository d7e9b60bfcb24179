"""depkit 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import functools
import os
from typing import Any, Callable

import click

from depkit import __version__
from depkit.core.config import DEFAULT_CONFIG_FILE, Config, get_config, init_config
from depkit.core.exceptions import DepkitError
from depkit.utils.logger import setup_logging


def _cfg() -> Config:
    """获取全局配置的快捷方式"""
    return get_config()


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把业务异常与文件系统错误转为 click 友好提示"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except DepkitError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e
        except OSError as e:
            raise click.ClickException(f"[IO_ERROR] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    default=lambda: os.getenv("DEPKIT_CONFIG", DEFAULT_CONFIG_FILE),
    help="配置文件路径",
)
def main(config_path: str) -> None:
    """depkit - 依赖解析、校验缓存与归档展开"""
    try:
        cfg = init_config(config_path)
    except DepkitError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    setup_logging(
        level=os.getenv("DEPKIT_LOG_LEVEL", cfg.log_level),
        json_output=os.getenv("DEPKIT_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from depkit.cli.cmd_archive import register as _reg_archive  # noqa: E402
from depkit.cli.cmd_deps import register as _reg_deps  # noqa: E402
from depkit.cli.cmd_manifest import register as _reg_manifest  # noqa: E402

_reg_deps(main)
_reg_archive(main)
_reg_manifest(main)
