from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple


class Intent(str, Enum):
    SORT_FILES = "sort-files"
    SYNC_EMAILS = "sync-emails"
    UPDATE_CALENDAR = "update-calendar"
    SHOW_FILES = "show-files"
    SEARCH_FILES = "search-files"
    GET_STATS = "get-stats"


Extractor = Callable[["re.Match[str]"], Dict[str, str]]

SORT_KEYS = ("type", "date", "size", "name")


@dataclass(frozen=True)
class PatternEntry:
    intent: Intent
    patterns: Tuple["re.Pattern[str]", ...]
    extract: Extractor


def _compile(*patterns: str) -> Tuple["re.Pattern[str]", ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _group(match: "re.Match[str]") -> str:
    return (match.group(1) or "").strip()


def _sort_params(match: "re.Match[str]") -> Dict[str, str]:
    return {"sortBy": _group(match).lower()}


def _sync_params(match: "re.Match[str]") -> Dict[str, str]:
    return {"provider": _group(match).lower() or "all"}


def _no_params(match: "re.Match[str]") -> Dict[str, str]:
    return {}


def _show_params(match: "re.Match[str]") -> Dict[str, str]:
    return {"source": _group(match).lower() or "local"}


def _search_params(match: "re.Match[str]") -> Dict[str, str]:
    return {"query": _group(match).strip().strip("\"'").strip()}


# Tried top to bottom, patterns left to right; first match wins.
# "show my stats" is not shadowed by show-files: that entry needs "files".
PATTERN_TABLE: Tuple[PatternEntry, ...] = (
    PatternEntry(
        Intent.SORT_FILES,
        _compile(
            r"sort (?:my )?files by (type|date|size|name)",
            r"organize (?:my )?files by (type|date|size|name)",
        ),
        _sort_params,
    ),
    PatternEntry(
        Intent.SYNC_EMAILS,
        _compile(
            r"sync (?:my )?(?:(outlook|gmail) )?emails?",
            r"update (?:my )?(?:(outlook|gmail) )?emails?",
        ),
        _sync_params,
    ),
    PatternEntry(
        Intent.UPDATE_CALENDAR,
        _compile(
            r"update (?:my )?calendar",
            r"sync (?:my )?calendar",
        ),
        _no_params,
    ),
    PatternEntry(
        Intent.SHOW_FILES,
        _compile(
            r"show (?:my )?(onedrive )?files",
            r"list (?:my )?(onedrive )?files",
        ),
        _show_params,
    ),
    PatternEntry(
        Intent.SEARCH_FILES,
        _compile(
            r"search (?:for )?(?:my )?files?(?: containing| with)? (.+)",
            r"find (?:my )?files?(?: containing| with)? (.+)",
        ),
        _search_params,
    ),
    PatternEntry(
        Intent.GET_STATS,
        _compile(
            r"show (?:my )?stats",
            r"get (?:my )?statistics",
        ),
        _no_params,
    ),
)


COMMAND_SUGGESTIONS: Tuple[str, ...] = (
    "Sort my files by type",
    "Sync my Outlook emails",
    "Update my calendar",
    "Show my OneDrive files",
    "Search files containing \"report\"",
    "Show my stats",
)
