import os
import re
from contextlib import contextmanager
from typing import Iterator, Optional

from filelock import FileLock, Timeout

from shopcore.config import settings
from shopcore.errors import Conflict

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


def lock_path(namespace: str, key: str, locks_dir: Optional[str] = None) -> str:
    locks_dir = locks_dir or settings.LOCKS_DIR
    os.makedirs(locks_dir, exist_ok=True)
    return os.path.join(locks_dir, f"{namespace}_{_SAFE_NAME.sub('_', key)}.lock")


@contextmanager
def keyed_lock(namespace: str, key: str, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Cross-process lock for one logical key (e.g. one guest cart), so workers
    sharing the same host serialize on it.
    """
    timeout = settings.CART_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
    lock = FileLock(lock_path(namespace, key))
    try:
        with lock.acquire(timeout=timeout):
            yield
    except Timeout:
        raise Conflict(f"could not acquire {namespace} lock; try again")
