"""
Console Logging for the Z.AI reasoning transformer
==================================================

Logging setup for the sidecar process and the visual vocabulary of the
diagnostic trace: stage banners and colored console echo.
IMPORTANT: No emojis in console output (Windows encoding issues). The log
file itself is plain text; colors are applied to the console echo only.
"""

import logging
from typing import List, Optional

from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

BANNER_TOP = "╔" + "═" * 99 + "╗"
BANNER_BOTTOM = "╚" + "═" * 99 + "╝"


class Stage:
    """Stage constants of the diagnostic trace"""
    REQUEST_INPUT = "REQUEST_INPUT"
    REQUEST_OUTPUT = "REQUEST_OUTPUT"
    RESPONSE = "RESPONSE"
    STREAMING = "STREAMING"


STAGE_TITLES = {
    Stage.REQUEST_INPUT: "[STAGE 1/3] INPUT: client -> router -> transform_request_in()",
    Stage.REQUEST_OUTPUT: "[STAGE 2/3] OUTPUT: transform_request_in() -> router -> LLM provider",
    Stage.RESPONSE: "[STAGE 3/3] LLM provider -> router -> transform_response_out()",
    Stage.STREAMING: "[STREAMING] Reading first chunks from response",
}

STAGE_SUBTITLES = {
    Stage.REQUEST_INPUT: "Request RECEIVED from client, BEFORE sending to provider",
    Stage.REQUEST_OUTPUT: "OPTIMIZED request to be sent to provider",
    Stage.RESPONSE: "Response RECEIVED from provider, BEFORE sending to client",
    Stage.STREAMING: "RAW stream content BEFORE the router parses it",
}

# Console colors keyed by line marker (first match wins)
MARKER_COLORS = [
    ("[STAGE", Fore.CYAN + Style.BRIGHT),
    ("[STREAMING]", Fore.CYAN + Style.BRIGHT),
    ("[ERROR]", Fore.RED + Style.BRIGHT),
    ("[LOG WRITE ERROR]", Fore.RED + Style.BRIGHT),
    ("[LOG ROTATION ERROR]", Fore.RED + Style.BRIGHT),
    ("[LOG ROTATION]", Fore.YELLOW),
    ("[PRIORITY", Fore.MAGENTA),
    ("[RESULT]", Fore.GREEN),
    ("[TAG DETECTED]", Fore.YELLOW),
    ("[THINKING]", Fore.BLUE),
    ("[START]", Fore.GREEN + Style.BRIGHT),
    ("[SKIPPED]", Fore.WHITE + Style.DIM),
]

BANNER_COLOR = Fore.CYAN


def stage_banner(stage: str, request_id: Optional[int] = None) -> List[str]:
    """Return the lines of a stage banner (plain text)."""
    title = STAGE_TITLES.get(stage, stage)
    if request_id is not None:
        title = f"{title} [Request #{request_id}]"

    lines = [BANNER_TOP, f"   {title}"]
    subtitle = STAGE_SUBTITLES.get(stage)
    if subtitle:
        lines.append(f"   {subtitle}")
    lines.append(BANNER_BOTTOM)
    return lines


def colorize(line: str) -> str:
    """Console coloring for a trace line"""
    if line in (BANNER_TOP, BANNER_BOTTOM):
        return f"{BANNER_COLOR}{line}{Style.RESET_ALL}"

    stripped = line.lstrip()
    for marker, color in MARKER_COLORS:
        if stripped.startswith(marker):
            return f"{color}{line}{Style.RESET_ALL}"
    return line


def _silence_noisy_loggers():
    """
    Configure third-party loggers to reduce noise.

    Prevents low-level HTTP connection logs from httpcore and httpx and the
    per-request access lines of uvicorn from cluttering the trace.
    """
    noisy_loggers = [
        'httpcore',
        'httpcore.connection',
        'httpcore.http11',
        'httpx',
        'uvicorn.access',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the sidecar process."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
        ]
    )
    _silence_noisy_loggers()
