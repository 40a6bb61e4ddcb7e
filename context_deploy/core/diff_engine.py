# context_deploy/core/diff_engine.py
"""Content comparison and merge primitives

Structured content (parsed JSON) is compared by key path; prose is compared
by markdown section, or line by line when it has no headings.
"""

import copy
import difflib
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..constants import SECTION_DIVIDER

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)
COMPLETED_TASK_PATTERN = re.compile(r"^\s*- \[x\] (.+)$", re.MULTILINE)
PREAMBLE = "(preamble)"


@dataclass
class DiffEntry:
    path: str
    old: Any = None
    new: Any = None


@dataclass
class DiffResult:
    """Changes needed to go from existing content to incoming content"""

    additions: List[DiffEntry] = field(default_factory=list)
    modifications: List[DiffEntry] = field(default_factory=list)
    deletions: List[DiffEntry] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.additions or self.modifications or self.deletions)

    def counts(self) -> Dict[str, int]:
        return {
            "additions": len(self.additions),
            "modifications": len(self.modifications),
            "deletions": len(self.deletions)
        }


def diff(existing: Any, incoming: Any) -> DiffResult:
    """
    Compare existing and incoming content

    Args:
        existing: Existing content (mapping or text)
        incoming: Incoming content (mapping or text)

    Returns:
        DiffResult with key paths (structured) or section/line labels (prose)
    """
    result = DiffResult()
    if isinstance(existing, str) and isinstance(incoming, str):
        _diff_prose(existing, incoming, result)
    elif isinstance(existing, dict) and isinstance(incoming, dict):
        _diff_structured(existing, incoming, "", result)
    elif existing != incoming:
        result.modifications.append(DiffEntry("", existing, incoming))
    return result


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else str(key)


def _diff_structured(existing: Dict[str, Any], incoming: Dict[str, Any],
                     prefix: str, result: DiffResult) -> None:
    for key, new_value in incoming.items():
        path = _join(prefix, key)
        if key not in existing:
            result.additions.append(DiffEntry(path, None, new_value))
            continue
        old_value = existing[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            _diff_structured(old_value, new_value, path, result)
        elif isinstance(old_value, list) and isinstance(new_value, list):
            # Arrays are compared as a whole
            if json.dumps(old_value, sort_keys=True) != json.dumps(new_value, sort_keys=True):
                result.modifications.append(DiffEntry(path, old_value, new_value))
        elif old_value != new_value:
            result.modifications.append(DiffEntry(path, old_value, new_value))

    for key, old_value in existing.items():
        if key not in incoming:
            result.deletions.append(DiffEntry(_join(prefix, key), old_value, None))


def split_sections(text: str) -> List[Tuple[str, str]]:
    """Split markdown into (heading, body) pairs; text before the first heading is the preamble"""
    sections = []
    matches = list(HEADING_PATTERN.finditer(text))
    if not matches:
        return [(PREAMBLE, text)] if text.strip() else []

    preamble = text[:matches[0].start()]
    if preamble.strip():
        sections.append((PREAMBLE, preamble))
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        sections.append((match.group(2), text[match.end():end]))
    return sections


def _diff_prose(existing: str, incoming: str, result: DiffResult) -> None:
    old_sections = split_sections(existing)
    new_sections = split_sections(incoming)
    has_headings = any(title != PREAMBLE for title, _ in old_sections + new_sections)

    if not has_headings:
        _diff_lines(existing, incoming, result)
        return

    old_map = dict(old_sections)
    new_map = dict(new_sections)
    for title, body in new_sections:
        label = f"section:{title}"
        if title not in old_map:
            result.additions.append(DiffEntry(label, None, body.strip()))
        elif old_map[title].strip() != body.strip():
            result.modifications.append(DiffEntry(label, old_map[title].strip(), body.strip()))
    for title, body in old_sections:
        if title not in new_map:
            result.deletions.append(DiffEntry(f"section:{title}", body.strip(), None))


def _diff_lines(existing: str, incoming: str, result: DiffResult) -> None:
    old_lines = existing.splitlines()
    new_lines = incoming.splitlines()
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "insert":
            for j in range(j1, j2):
                result.additions.append(DiffEntry(f"line:{j + 1}", None, new_lines[j]))
        elif tag == "delete":
            for i in range(i1, i2):
                result.deletions.append(DiffEntry(f"line:{i + 1}", old_lines[i], None))
        elif tag == "replace":
            result.modifications.append(DiffEntry(
                f"line:{j1 + 1}", "\n".join(old_lines[i1:i2]), "\n".join(new_lines[j1:j2])
            ))


def deep_merge(existing: Any, incoming: Any) -> Any:
    """
    Merge incoming into existing

    Incoming scalars win, nested objects merge recursively and arrays are
    replaced wholesale. Neither argument is modified.
    """
    if not isinstance(existing, dict) or not isinstance(incoming, dict):
        return copy.deepcopy(incoming)

    merged = copy.deepcopy(existing)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def array_append_merge(existing: Any, incoming: Any) -> Any:
    """Like deep_merge, but arrays are concatenated existing + incoming"""
    if isinstance(existing, list) and isinstance(incoming, list):
        return copy.deepcopy(existing) + copy.deepcopy(incoming)
    if not isinstance(existing, dict) or not isinstance(incoming, dict):
        return copy.deepcopy(incoming)

    merged = copy.deepcopy(existing)
    for key, value in incoming.items():
        if key in merged:
            merged[key] = array_append_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def section_merge(existing: str, incoming: str, divider: str = SECTION_DIVIDER) -> str:
    """Append incoming prose after existing prose"""
    return existing + divider + incoming


def preserve_task_status(existing: str, incoming: str) -> str:
    """
    Carry completed checklist items over into incoming prose

    Every ``- [x] <title>`` in existing content marks matching ``- [ ]``
    lines in incoming content as done. A line matches when it contains the
    title as a literal substring, so overlapping titles can match more than
    one item.
    """
    result = incoming
    for match in COMPLETED_TASK_PATTERN.finditer(existing):
        title = match.group(1).strip()
        if not title:
            continue
        pattern = re.compile(r"^(\s*)- \[ \] (.*)" + re.escape(title) + r"(.*)$", re.MULTILINE)
        result = pattern.sub(
            lambda m, t=title: f"{m.group(1)}- [x] {m.group(2)}{t}{m.group(3)}", result
        )
    return result


def format_diff(result: DiffResult, limit: Optional[int] = 20) -> str:
    """Render a diff as one line per change"""
    lines = []
    for prefix, entries in (("+", result.additions), ("~", result.modifications), ("-", result.deletions)):
        for entry in entries:
            if prefix == "+":
                lines.append(f"+ {entry.path}: {_short(entry.new)}")
            elif prefix == "-":
                lines.append(f"- {entry.path}: {_short(entry.old)}")
            else:
                lines.append(f"~ {entry.path}: {_short(entry.old)} -> {_short(entry.new)}")
    if limit is not None and len(lines) > limit:
        hidden = len(lines) - limit
        lines = lines[:limit] + [f"... {hidden} more"]
    return "\n".join(lines)


def _short(value: Any, width: int = 60) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    text = text.replace("\n", "\\n")
    return text if len(text) <= width else text[:width - 3] + "..."


def load_structured(text: str) -> Any:
    """Parse structured text (JSON)"""
    return json.loads(text) if text.strip() else {}


def dump_structured(data: Any) -> str:
    """Serialize structured content as pretty-printed JSON with a trailing newline"""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
