"""
Console output for the database seeding script.

Colors each stage of a seed run (target, load, per-collection counts) with
colorama, and mirrors failures to logs/<name>.log for later inspection.
"""

import datetime
import logging
import os
import sys
from typing import Dict
from urllib.parse import urlsplit

from colorama import Fore, Style, init

init(autoreset=True)


class C:
    """Colors for seed output."""
    HEADER = Fore.CYAN + Style.BRIGHT
    STEP = Fore.BLUE + Style.BRIGHT
    OK = Fore.GREEN + Style.BRIGHT
    ERR = Fore.RED + Style.BRIGHT
    COLLECTION = Fore.MAGENTA
    COUNT = Fore.GREEN
    RESET = Style.RESET_ALL


def _ts() -> str:
    return datetime.datetime.now().strftime("%H:%M:%S")


def redact_uri(uri: str) -> str:
    """MongoDB URI without its credentials, safe to print."""
    parts = urlsplit(uri)
    _, at, hosts = parts.netloc.rpartition("@")
    if not at:
        return uri
    return parts._replace(netloc=f"***@{hosts}").geturl()


# ---------------------------------------------------------------------------
# Seed stages
# ---------------------------------------------------------------------------

def header(title: str, uri: str) -> None:
    """Banner naming the run and the database it writes to."""
    print(f"\n{C.HEADER}{'='*60}")
    print(f"  {title}")
    print(f"  target: {redact_uri(uri)}")
    print(f"{'='*60}{C.RESET}\n")


def step(msg: str) -> None:
    print(f"{C.STEP}[{_ts()}] >> {msg}{C.RESET}")


def ok(msg: str) -> None:
    print(f"{C.OK}[{_ts()}] OK {msg}{C.RESET}")


def err(msg: str) -> None:
    print(f"{C.ERR}[{_ts()}] ERR {msg}{C.RESET}")


def seed_summary(counts: Dict[str, int], dropped: bool = False) -> None:
    """
    One line per collection with the number of documents written, then a
    total. Collections cleared with --drop are marked as replaced.
    """
    action = "replaced" if dropped else "appended"
    print(f"\n{C.HEADER}Documents written ({action}){C.RESET}")
    width = max((len(name) for name in counts), default=0)
    for name, count in counts.items():
        print(f"  {C.COLLECTION}{name:<{width}}{C.RESET}  {C.COUNT}{count}{C.RESET}")
    print(f"  {'total':<{width}}  {C.COUNT}{sum(counts.values())}{C.RESET}\n")


# ---------------------------------------------------------------------------
# File logging
# ---------------------------------------------------------------------------

def setup_verbose_logging(name: str = "seed", level: int = logging.DEBUG) -> logging.Logger:
    """
    Logger writing everything to logs/<name>.log; only warnings reach the console.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.WARNING)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    log_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")
    os.makedirs(log_dir, exist_ok=True)
    fh = logging.FileHandler(os.path.join(log_dir, f"{name}.log"))
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger
