"""Regex guard for the raw command endpoint.

Commands are matched case-insensitively anywhere in the line, so chained
commands (``ls; sudo ...``) are caught too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# (label, pattern)
DESTRUCTIVE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("recursive delete", r"\brm\s+-rf"),
    ("recursive delete", r"\brm\s+.*-.*r.*f"),
    ("directory removal", r"\brmdir\b"),
    ("permission change", r"\bchmod\b"),
    ("ownership change", r"\bchown\b"),
    ("privilege escalation", r"\bsudo\b"),
    ("privilege escalation", r"\bsu\b"),
    ("process kill", r"\bp?kill\b"),
    ("power state", r"\b(?:reboot|shutdown)\b"),
    ("disk format", r"\bmkfs\b"),
    ("raw disk write", r"\bdd\b"),
)

NETWORK_PATTERNS: tuple[tuple[str, str], ...] = (
    ("network transfer", r"\b(?:curl|wget)\b"),
    ("remote copy", r"\b(?:scp|sftp|rsync)\b"),
    ("remote shell", r"\bssh\b"),
)


@dataclass
class GuardResult:
    allow: bool
    error_message: str = ""
    pattern: str | None = None


class CommandGuard:
    """Blocks destructive (and optionally network) shell commands."""

    def __init__(self, block_network: bool = False, custom_blocked: list[str] | None = None):
        rules = list(DESTRUCTIVE_PATTERNS)
        if block_network:
            rules.extend(NETWORK_PATTERNS)
        rules.extend(("custom rule", p) for p in custom_blocked or ())
        self.rules = [(label, re.compile(p, re.IGNORECASE)) for label, p in rules]

    def check_command(self, command: str) -> GuardResult:
        line = command.strip()
        for label, pattern in self.rules:
            if pattern.search(line):
                return GuardResult(
                    allow=False,
                    error_message=f"Command blocked ({label}, pattern {pattern.pattern}): {line[:100]}",
                    pattern=pattern.pattern,
                )
        return GuardResult(allow=True)
