import os
import re
import shutil
import threading
import time
import uuid
from typing import Optional
from tubebrief.utils.logger import logger

_FORBIDDEN = re.compile(r'[<>:"/\\|?*]')

_active_lock = threading.Lock()
_active_paths = set()

def active_workspaces() -> frozenset:
    with _active_lock:
        return frozenset(_active_paths)

def sanitize_filename(filename: Optional[str], max_length: int = 100) -> str:
    name = (filename or "").encode("ascii", "ignore").decode("ascii")
    name = _FORBIDDEN.sub("", name)
    name = re.sub(r"\s+", "_", name).strip()
    return name[:max_length] or "video"

class RunWorkspace:
    """Private temp directory for one pipeline run or download.

    The directory name carries a unique run id so concurrent runs sharing
    the same root never touch each other's files.
    """

    def __init__(self, root: str, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex
        self.root = root
        self.path = os.path.join(root, f"run_{int(time.time() * 1000)}_{self.run_id}")
        os.makedirs(self.path)
        with _active_lock:
            _active_paths.add(os.path.abspath(self.path))

    def file(self, name: str) -> str:
        return os.path.join(self.path, name)

    def cleanup(self) -> None:
        with _active_lock:
            _active_paths.discard(os.path.abspath(self.path))
        if os.path.exists(self.path):
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug(f"Removed workspace {self.path}")

    def __enter__(self) -> "RunWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

def sweep_stale_files(root: str, max_age_seconds: int, now: Optional[float] = None) -> int:
    """Delete entries of root older than max_age_seconds. Returns how many were removed.

    Workspaces still in use by this process are left alone whatever their age.
    """
    if not os.path.isdir(root):
        return 0
    now = now if now is not None else time.time()
    removed = 0
    active = active_workspaces()
    for name in os.listdir(root):
        path = os.path.join(root, name)
        if os.path.abspath(path) in active:
            continue
        try:
            age = now - os.stat(path).st_mtime
        except FileNotFoundError:
            continue
        if age <= max_age_seconds:
            continue
        if os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
        else:
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
        removed += 1
        logger.info(f"Cleaned up old file: {name}")
    return removed
