#!/usr/bin/env python3
"""Named-resource lock for container lifecycle operations.

Mutating subcommands on the same container name are serialised through an
advisory ``fcntl`` lock on ``<lock_dir>/<container_name>.lock``, so two
concurrent ``start`` invocations cannot both remove and recreate the container.
"""
# built-in modules
import fcntl
import logging
import os
import time
import typing
from pathlib import Path
# user-defined modules
from gpucrate.core.errors import ContainerLockTimeout, create_error_context

logger = logging.getLogger(__name__)


class ContainerLock:
    """Exclusive advisory lock keyed by container name.

    Attributes:
        path (Path): The lock file path.
        timeout (float): Seconds to wait before giving up.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, container_name: str, lock_dir: typing.Union[str, Path], timeout: float = 30.0) -> None:
        self.container_name = container_name
        self.path = Path(lock_dir) / f"{container_name}.lock"
        self.timeout = timeout
        self._fd: typing.Optional[int] = None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Acquire the lock, polling until ``timeout`` expires.

        Raises:
            ContainerLockTimeout: If another holder keeps the lock past the timeout.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise ContainerLockTimeout(
                        f"Timed out after {self.timeout:g}s waiting for lock on {self.container_name}",
                        context=create_error_context(
                            "lock", container_name=self.container_name, file_path=str(self.path)
                        ),
                        suggestions=["Another gpucrate command is operating on this container; retry when it finishes"],
                    )
                time.sleep(self.POLL_INTERVAL)
        self._fd = fd
        logger.debug("Acquired lock %s", self.path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released lock %s", self.path)

    def __enter__(self) -> "ContainerLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
