# adaptcoder/core/restart.py
"""
重启触发器 (RestartTrigger)

补丁生效需要重启时：等待一个宽限期，以分离模式重新启动本程序，
再在短暂延迟后退出当前进程。同一时刻只允许一个待执行的重启。
"""

import os
import shlex
import subprocess
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from ..utils.console import error, info


@dataclass
class RestartResult:
    scheduled: bool
    already_pending: bool = False
    error: Optional[str] = None


class ProcessLauncher(ABC):
    """启动新进程 / 退出当前进程的能力，测试中可替换"""

    @abstractmethod
    def launch(self, command: List[str], cwd: str) -> None:
        pass

    @abstractmethod
    def exit(self, after_delay: float) -> None:
        pass


class SubprocessLauncher(ProcessLauncher):
    def launch(self, command: List[str], cwd: str) -> None:
        kwargs: Dict[str, Any] = {
            "cwd": cwd,
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "close_fds": True,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True
        subprocess.Popen(command, **kwargs)

    def exit(self, after_delay: float) -> None:
        timer = threading.Timer(after_delay, os._exit, args=(0,))
        timer.start()


def default_command() -> List[str]:
    """按当前进程的启动方式重新启动"""
    return [sys.executable] + sys.argv


class RestartTrigger:
    def __init__(
        self,
        launcher: Optional[ProcessLauncher] = None,
        command: Union[str, List[str], None] = None,
        cwd: Optional[str] = None,
        grace_delay: float = 2.0,
        exit_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.launcher = launcher or SubprocessLauncher()
        if isinstance(command, str):
            command = shlex.split(command)
        self.command = command or default_command()
        self.cwd = cwd or os.getcwd()
        self.grace_delay = grace_delay
        self.exit_delay = exit_delay
        self._sleep = sleep
        self._pending = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Dict[str, Any], launcher: Optional[ProcessLauncher] = None) -> 'RestartTrigger':
        restart_cfg = config.get("restart", {})
        return cls(
            launcher=launcher,
            command=restart_cfg.get("command"),
            cwd=str(config.get("project_root", ".")),
            grace_delay=restart_cfg.get("grace_delay", 2.0),
            exit_delay=restart_cfg.get("exit_delay", 1.0),
        )

    @property
    def pending(self) -> bool:
        return self._pending

    def request_restart(self) -> RestartResult:
        """
        已有待执行的重启时直接返回。
        启动失败会清除待执行标记，当前进程不退出，错误随结果返回。
        """
        with self._lock:
            if self._pending:
                return RestartResult(scheduled=False, already_pending=True)
            self._pending = True

        info(f"Restarting in {self.grace_delay:g}s: {' '.join(self.command)}")
        try:
            self._sleep(self.grace_delay)
            self.launcher.launch(self.command, self.cwd)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            with self._lock:
                self._pending = False
            error(f"Restart failed: {e}")
            return RestartResult(scheduled=False, error=str(e))

        self.launcher.exit(self.exit_delay)
        return RestartResult(scheduled=True)
