# patchflow/storage/file_lock.py
"""
跨进程文件锁，保护备份目录中的共享文件（operations.log、backup-info.json）。

基于 fcntl (Unix) / msvcrt (Windows)，支持 with 语句和获取超时。
"""

import os
import sys
import time
from pathlib import Path
from typing import Optional

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl


class LockTimeout(RuntimeError):
    """在超时时间内未能获得文件锁"""


class FileLock:
    """
    独占文件锁。

    :param lock_file_path: 锁文件路径，父目录会自动创建
    :param timeout: 获取锁的最长等待秒数，None 表示一直阻塞
    :param poll_interval: 非阻塞重试间隔
    """

    def __init__(self, lock_file_path: str, timeout: Optional[float] = 10.0, poll_interval: float = 0.05):
        self.lock_file_path = Path(lock_file_path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fd: Optional[int] = None

    def _try_lock(self, fd: int) -> bool:
        try:
            if sys.platform == "win32":
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return True
        except (BlockingIOError, PermissionError):
            return False

    def acquire(self):
        self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.lock_file_path), os.O_RDWR | os.O_CREAT)
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while not self._try_lock(fd):
            if deadline is not None and time.monotonic() >= deadline:
                os.close(fd)
                raise LockTimeout(f"Could not acquire lock {self.lock_file_path} within {self.timeout}s")
            time.sleep(self.poll_interval)
        self._fd = fd

    def release(self):
        if self._fd is None:
            return
        try:
            if sys.platform == "win32":
                msvcrt.locking(self._fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None

    @property
    def is_locked(self) -> bool:
        return self._fd is not None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
