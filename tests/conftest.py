import os
import stat
import tempfile
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

# Keep server log files out of the working tree.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="pcsweb-logs-"))

from pcscore.command_execution.pcs_runner import PcsRunner

# Strict CI profile
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
    print_blob=True,
)

# Quick local runs
settings.register_profile(
    "dev",
    max_examples=25,
    deadline=None,
    derandomize=True,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# Stand-in for the BaiduPCS-Go binary: canned output per subcommand.
FAKE_PCS = r"""#!/bin/sh
cmd="$1"
[ $# -gt 0 ] && shift
case "$cmd" in
  login)
    if [ "$2" = "good-bduss" ]; then
      echo "百度帐号登录成功: tester"
    else
      echo "BDUSS 无效" >&2
      exit 1
    fi
    ;;
  ls)
    printf '当前目录: %s\n----\n' "$1"
    printf '  #  文件大小       修改日期          文件(目录)\n'
    printf '  0         -  2019-07-12 22:39:21  apps/\n'
    printf '  1    1.14MB  2020-01-01 12:00:00  my notes.txt\n'
    printf '     总: 1.14MB                   文件总数: 1, 目录总数: 1\n'
    printf '%s\n' '----'
    ;;
  download)
    # download --retry N <path> --save <local>
    case "$3" in
      *broken*)
        printf '[1] ↓ 256.00KB/1.00MB 128.00KB/s in 2s, left 6s\n'
        echo "下载文件错误: 网络连接失败" >&2
        exit 1
        ;;
    esac
    printf '[1] ↓ 256.00KB/1.00MB 128.00KB/s in 2s, left 6s\n'
    sleep 0.2
    printf '↓ 512.00KB/1.00MB 128.00KB/s in 4s, left 4s\n'
    sleep 0.2
    printf '[1] ↓ 256.00KB/1.00MB 128.00KB/s in 5s\n'
    sleep 0.2
    printf '↓ 1.00MB/1.00MB 128.00KB/s in 8s, left 0s\n'
    printf '下载完成, 保存位置: %s\n' "$5"
    ;;
  mkdir)
    echo "创建目录成功: $1"
    ;;
  rm)
    echo "操作失败, 遍历路径出错, 文件或目录不存在" >&2
    exit 1
    ;;
  quota)
    printf '总空间: 100.00GB, 已用空间: 25.00GB, 比率: 25.00%%\n'
    ;;
  mv)
    echo "移动文件成功: $1 -> $2"
    ;;
  cp)
    ;;
  who)
    echo "当前帐号 uid: 12345, 用户名: tester, 性别: 男, 年龄: 0.0"
    ;;
  slow)
    echo "first"
    sleep 1
    echo "second"
    ;;
  split-utf8)
    # "用户名" with the first character cut across two writes
    printf '\347\224'
    sleep 0.3
    printf '\250\346\210\267\345\220\215\n'
    ;;
  stdout-fail)
    echo "only on stdout"
    exit 3
    ;;
  *)
    echo "unknown subcommand: $cmd" >&2
    exit 2
    ;;
esac
"""


@pytest.fixture
def fake_pcs(tmp_path: Path) -> str:
    """Path to an executable fake pcs tool."""
    script = tmp_path / "baidupcs"
    script.write_text(FAKE_PCS, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


class RecordingRunner(PcsRunner):
    """PcsRunner that remembers every argument vector and process it started."""

    def __init__(self, executable: str):
        super().__init__(executable)
        self.calls = []
        self.processes = []

    async def start(self, *args: str):
        self.calls.append(list(args))
        process = await super().start(*args)
        self.processes.append(process)
        return process


@pytest.fixture
def runner(fake_pcs: str) -> RecordingRunner:
    return RecordingRunner(fake_pcs)


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    return tmp_path / "downloads"
