"""Running RBTools' post-review to create or update review requests.

post-review is the only way review requests get created. The command line
differs between the two cases:

    create:  post-review --server=... --submit-as=<author> <change number>
    update:  post-review -r <review id> --server=... --submit-as=<author> <file> ...

Its stdout is read line by line for either "Review request #<id> posted." or
an error line carrying the review request ID it failed on.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Iterable

from rich.console import Console

from rblink_core.config import ReviewboardSettings
from rblink_core.errors import ConfigurationError
from rblink_core.utils.patterns import HTTP_ERROR_PATTERN, REVIEW_ID_PATTERN, match_pattern

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class PostReviewResult:
    exit_code: int
    review_id: int | None = None
    error_code: int | None = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def build_command_line(
    settings: ReviewboardSettings,
    author: str,
    change_number: int | None = None,
    review_id: int | None = None,
    files: Iterable[str] | None = None,
) -> list[str]:
    """Build the post-review arguments for a new or an updated review request.

    An update needs both a review ID and at least one file; otherwise a new
    review request is posted from the change number. Flags always precede
    positional arguments.
    """
    files = list(files or [])
    if not author:
        raise ConfigurationError("Author cannot be empty.")

    args = [settings.cmd_path]
    if review_id is not None and files:
        args += ["-r", str(review_id)]
    elif change_number is None:
        raise ConfigurationError("Cannot build a post-review command line without a change number or review ID.")

    args += [
        f"--server={settings.url}",
        f"--username={settings.username}",
        f"--password={settings.password}",
        f"--submit-as={author}",
    ]
    if settings.scm_client:
        args.append(f"--scm-client={settings.scm_client}")

    if review_id is not None and files:
        args += files
    else:
        args.append(str(change_number))
    return args


def redact(args: list[str]) -> list[str]:
    """Return ``args`` with the password hidden, for logging."""
    return ["--password=****" if a.startswith("--password=") else a for a in args]


def parse_response(lines: Iterable[str]) -> tuple[int | None, int | None]:
    """Scan post-review output for the posted review ID or the failing review ID.

    Scanning stops at the first line that matches either pattern, but the
    iterable is always consumed to the end so the process never blocks on a
    full pipe.
    """
    review_id = error_code = None
    for raw in lines:
        line = raw.rstrip("\r\n")
        console.print(f">> {line}", markup=False, highlight=False)
        if review_id is not None or error_code is not None:
            continue
        review_id = match_pattern(line, REVIEW_ID_PATTERN, 1)
        if review_id is None:
            error_code = match_pattern(line, HTTP_ERROR_PATTERN, 1)
    return review_id, error_code


def _terminate_process(process: subprocess.Popen) -> None:
    """Terminate a subprocess, escalating to kill if needed."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()


class PostReviewLauncher:
    """Spawns post-review and collects what it reported.

    stdin is /dev/null: when the stored credentials are wrong post-review
    prompts for new ones, and a closed stdin turns that prompt into a
    failure instead of a hang. ``timeout`` bounds the whole run.
    """

    def __init__(self, timeout: float | None = None, env: dict | None = None):
        self.timeout = timeout
        self.env = env

    def run(self, args: list[str]) -> PostReviewResult:
        logger.debug("Running %s", " ".join(redact(args)))
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=self.env,
            )
        except OSError as e:
            raise ConfigurationError(f"Could not execute {args[0]}: {e}") from e

        timed_out = threading.Event()

        def _expire():
            timed_out.set()
            _terminate_process(process)

        watchdog = threading.Timer(self.timeout, _expire) if self.timeout else None
        with process:
            if watchdog is not None:
                watchdog.daemon = True
                watchdog.start()
            try:
                review_id, error_code = parse_response(process.stdout)
                exit_code = process.wait()
            except BaseException:
                _terminate_process(process)
                raise
            finally:
                if watchdog is not None:
                    watchdog.cancel()

        if timed_out.is_set():
            logger.warning("%s did not finish within %ss and was terminated", args[0], self.timeout)
        return PostReviewResult(
            exit_code=exit_code,
            review_id=review_id,
            error_code=error_code,
            timed_out=timed_out.is_set(),
        )
