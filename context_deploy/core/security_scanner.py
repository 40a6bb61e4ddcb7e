# context_deploy/core/security_scanner.py
"""Pre-write security scanning of context bundles

Every string leaf of a context is checked against fixed pattern sets:
credential-shaped tokens and embedded secrets anywhere, shell-injection
patterns in hook and command fields, and directory traversal in name and
path fields. Findings carry the key path and a pattern label only, never the
matched value.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Pattern, Tuple

from ..constants import FILTERED_VALUE
from ..models.context import Context

logger = logging.getLogger(__name__)

CREDENTIAL_TOKEN_PATTERNS: List[Tuple[str, Pattern]] = [
    ("anthropic-key", re.compile(r"sk-ant-[A-Za-z0-9_-]{20,}")),
    ("openai-key", re.compile(r"\bsk-[A-Za-z0-9]{20,}")),
    ("aws-access-key", re.compile(r"\bAKIA[0-9A-Z]{16}\b")),
    ("github-token", re.compile(r"\bgh[pousr]_[A-Za-z0-9]{36,}")),
    ("slack-token", re.compile(r"\bxox[baprs]-[A-Za-z0-9-]{10,}")),
    ("google-api-key", re.compile(r"\bAIza[0-9A-Za-z_-]{35}")),
    ("private-key-block", re.compile(r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----")),
    ("bearer-token", re.compile(r"bearer\s+[\w+./~-]{20,}=*", re.IGNORECASE)),
]

INLINE_SECRET_PATTERNS: List[Tuple[str, Pattern]] = [
    ("inline-api-key", re.compile(r"api[_-]?key\s*[:=]\s*[\"'][^\"']{8,}[\"']", re.IGNORECASE)),
    ("inline-secret-key", re.compile(r"secret[_-]?key\s*[:=]\s*[\"'][^\"']{8,}[\"']", re.IGNORECASE)),
    ("inline-access-token", re.compile(r"access[_-]?token\s*[:=]\s*[\"'][^\"']{8,}[\"']", re.IGNORECASE)),
]

SENSITIVE_KEY_PATTERN = re.compile(
    r"(api[_-]?key|secret([_-]?key)?|access[_-]?token|auth[_-]?token|"
    r"client[_-]?secret|private[_-]?key|password|passwd)$",
    re.IGNORECASE
)

PLACEHOLDER_PATTERN = re.compile(r"^(\$\{[^}]*\}|\$[A-Z_][A-Z0-9_]*|<[^>]*>|\*+|\[FILTERED\]|x+)$", re.IGNORECASE)

DANGEROUS_COMMAND_PATTERNS: List[Tuple[str, Pattern]] = [
    ("rm-rf-root", re.compile(r"rm\s+-rf\s+/(\s|$)", re.IGNORECASE)),
    ("rm-rf-home", re.compile(r"rm\s+-rf\s+~", re.IGNORECASE)),
    ("rm-rf-glob", re.compile(r"rm\s+-rf\s+\*", re.IGNORECASE)),
    ("eval", re.compile(r"\beval\s*\(", re.IGNORECASE)),
    ("exec", re.compile(r"\bexec\s*\(", re.IGNORECASE)),
    ("child-process", re.compile(r"require\s*\(\s*[\"']child_process[\"']\s*\)", re.IGNORECASE)),
    ("process-exit", re.compile(r"process\.exit", re.IGNORECASE)),
    ("curl-pipe-shell", re.compile(r"curl\s+.*\|\s*(ba|z)?sh\b", re.IGNORECASE)),
    ("wget-pipe-shell", re.compile(r"wget\s+.*\|\s*(ba|z)?sh\b", re.IGNORECASE)),
    ("chmod-777", re.compile(r"chmod\s+777", re.IGNORECASE)),
    ("sudo", re.compile(r"\bsudo\s+", re.IGNORECASE)),
    ("mkfs", re.compile(r"\bmkfs", re.IGNORECASE)),
    ("dd", re.compile(r"\bdd\s+if=", re.IGNORECASE)),
    ("format-drive", re.compile(r"format\s+c:", re.IGNORECASE)),
    ("command-substitution", re.compile(r";\s*(rm|curl|wget|nc)\s", re.IGNORECASE)),
]

PATH_TRAVERSAL_PATTERNS: List[Tuple[str, Pattern]] = [
    ("dot-dot-slash", re.compile(r"\.\./")),
    ("dot-dot-backslash", re.compile(r"\.\.\\")),
    ("encoded-traversal", re.compile(r"%2e%2e(%2f|/)|\.\.%2f|\.\.%252f", re.IGNORECASE)),
]

BLOCKED_PATHS = [
    "/etc/passwd",
    "/etc/shadow",
    "/etc/sudoers",
    "/Windows/System32",
    "~/.ssh/id_rsa",
    "~/.ssh/id_ed25519",
    "~/.aws/credentials",
    "~/.config/gcloud",
]

COMMAND_FIELDS = {"command", "commands", "hook", "hooks", "script", "scripts",
                  "run", "exec", "shell", "cmd", "action", "prompt_command"}
PATH_FIELDS = {"name", "path", "file", "filename", "file_path", "target", "directory", "dir"}


@dataclass
class SecurityFinding:
    kind: str  # api_key | malicious_command | path_traversal
    path: str
    pattern: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "path": self.path, "pattern": self.pattern}


@dataclass
class SecurityScanResult:
    """Outcome of scanning a context"""

    findings: List[SecurityFinding] = field(default_factory=list)

    @property
    def has_api_keys(self) -> bool:
        return any(f.kind == "api_key" for f in self.findings)

    @property
    def has_malicious_commands(self) -> bool:
        return any(f.kind == "malicious_command" for f in self.findings)

    @property
    def has_path_traversal(self) -> bool:
        return any(f.kind == "path_traversal" for f in self.findings)

    @property
    def is_safe(self) -> bool:
        return not self.findings

    @property
    def blockers(self) -> List[str]:
        blockers = []
        if self.has_api_keys:
            blockers.append("Detected API keys")
        if self.has_malicious_commands:
            blockers.append("Detected malicious commands")
        if self.has_path_traversal:
            blockers.append("Detected directory traversal")
        return blockers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_safe": self.is_safe,
            "has_api_keys": self.has_api_keys,
            "has_malicious_commands": self.has_malicious_commands,
            "has_path_traversal": self.has_path_traversal,
            "blockers": self.blockers,
            "findings": [f.to_dict() for f in self.findings]
        }


def _walk(value: Any, path: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], Any]]:
    """Yield (key path, leaf) for every leaf; dict keys are yielded as leaves too"""
    if isinstance(value, dict):
        for key, child in value.items():
            key = str(key)
            yield path + (key, "<key>"), key
            yield from _walk(child, path + (key,))
    elif isinstance(value, (list, tuple)):
        for index, child in enumerate(value):
            yield from _walk(child, path + (str(index),))
    else:
        yield path, value


def _named_segments(path: Tuple[str, ...]) -> List[str]:
    return [p.lower() for p in path if not p.isdigit() and p != "<key>"]


def is_placeholder(value: str) -> bool:
    return bool(PLACEHOLDER_PATTERN.match(value.strip()))


class SecurityScanner:
    """Fixed-pattern scanner run before any write"""

    def scan_context(self, context: Context) -> SecurityScanResult:
        """
        Scan every string leaf of a context

        Args:
            context: Context to scan

        Returns:
            SecurityScanResult
        """
        result = self.scan_data(context.to_dict())
        if not result.is_safe:
            logger.warning(
                f"Security scan found {len(result.findings)} issue(s): {', '.join(result.blockers)}"
            )
            for finding in result.findings:
                logger.debug(f"  {finding.kind} at {finding.path} ({finding.pattern})")
        return result

    def scan_data(self, data: Any) -> SecurityScanResult:
        """Scan an arbitrary nested structure"""
        result = SecurityScanResult()
        seen = set()

        def add(kind: str, path: Tuple[str, ...], pattern: str) -> None:
            label = ".".join(p for p in path if p != "<key>")
            if (kind, label, pattern) not in seen:
                seen.add((kind, label, pattern))
                result.findings.append(SecurityFinding(kind, label, pattern))

        for path, leaf in _walk(data):
            if not isinstance(leaf, str) or not leaf:
                continue
            is_key = bool(path) and path[-1] == "<key>"
            segments = _named_segments(path)
            last = segments[-1] if segments else ""

            for label, pattern in CREDENTIAL_TOKEN_PATTERNS + INLINE_SECRET_PATTERNS:
                if pattern.search(leaf):
                    add("api_key", path, label)

            if (not is_key and SENSITIVE_KEY_PATTERN.search(last)
                    and len(leaf) >= 8 and not is_placeholder(leaf)):
                add("api_key", path, "sensitive-field")

            if not is_key and COMMAND_FIELDS.intersection(segments):
                for label, pattern in DANGEROUS_COMMAND_PATTERNS:
                    if pattern.search(leaf):
                        add("malicious_command", path, label)

            if is_key or last in PATH_FIELDS:
                for label, pattern in PATH_TRAVERSAL_PATTERNS:
                    if pattern.search(leaf):
                        add("path_traversal", path, label)
                for blocked in BLOCKED_PATHS:
                    if blocked in leaf:
                        add("path_traversal", path, "blocked-path")

        return result

    def sanitize(self, data: Any) -> Any:
        """
        Return a deep copy with secret values replaced by ``[FILTERED]``

        Args:
            data: Nested structure to sanitize

        Returns:
            Sanitized copy
        """
        if isinstance(data, dict):
            cleaned = {}
            for key, value in data.items():
                if (isinstance(value, str) and SENSITIVE_KEY_PATTERN.search(str(key))
                        and not is_placeholder(value)):
                    cleaned[key] = FILTERED_VALUE
                else:
                    cleaned[key] = self.sanitize(value)
            return cleaned
        if isinstance(data, list):
            return [self.sanitize(item) for item in data]
        if isinstance(data, str):
            text = data
            for _, pattern in CREDENTIAL_TOKEN_PATTERNS + INLINE_SECRET_PATTERNS:
                text = pattern.sub(FILTERED_VALUE, text)
            return text
        return copy.deepcopy(data)
