import os
from typing import Optional


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def which(cmd: str, path: Optional[str] = None) -> Optional[str]:
    # names with a slash are taken relative to cwd, never looked up in PATH
    if os.sep in cmd:
        return cmd if is_executable(cmd) else None
    search = os.environ.get('PATH', os.defpath) if path is None else path
    for d in search.split(os.pathsep):
        candidate = os.path.join(d or os.curdir, cmd)
        if is_executable(candidate):
            return candidate
    return None
