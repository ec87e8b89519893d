from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler


def setup_logging(log_dir: str = "logs", *, level: int = logging.INFO, console: bool = True) -> logging.Logger:
    """
    Configure the `settler` logger tree (settler.auth etc.): a rotating
    settler.log under `log_dir` plus an optional console handler. Repeat calls
    do not stack handlers.
    """
    os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger("settler")
    root.setLevel(level)
    root.propagate = False

    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        fh = RotatingFileHandler(os.path.join(log_dir, "settler.log"), maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        root.addHandler(fh)

    has_console = any(type(h) is logging.StreamHandler for h in root.handlers)
    if console and not has_console:
        sh = logging.StreamHandler()
        sh.setLevel(logging.WARNING)
        sh.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        root.addHandler(sh)

    return root
