"""Reference validator for the Figma export.

Loads every token file in tier order, flattens them into one dotted-path
namespace, and checks that each alias points at a token that exists:

- global tier (``tokens/global/**``) first
- client tier (``tokens/clients/<client>/*.json``) next
- project tier (``tokens/clients/<client>/projects/<project>/*.json``) last

Later tiers override earlier ones key by key. Broken aliases are reported as
errors; naming and typing problems as warnings. ``valid`` depends only on
errors.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from dtm.errors import RequestValidationFailed
from dtm.tokens.references import collect_edges
from dtm.tokens.tree import iter_tokens, to_dtcg

logger = logging.getLogger(__name__)

TOKEN_NAME_PATTERN = re.compile(r"^[a-z0-9.\-]+$")


class Severity(Enum):
    ERROR = "error"  # Blocks export
    WARNING = "warning"  # Export allowed after review


@dataclass
class ValidationIssue:
    """A single finding about one token (or one unreadable file)."""

    severity: Severity
    code: str  # Machine-readable issue code
    token: str  # Dotted token path, or the file path for file-level issues
    message: str
    ref: str = ""

    def to_dict(self) -> dict[str, str]:
        out = {"code": self.code, "token": self.token, "path": self.token, "message": self.message}
        if self.ref:
            out["ref"] = self.ref
        return out


@dataclass
class ValidationReport:
    """Result of one validation run."""

    tokens: dict[str, dict] = field(default_factory=dict)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> dict[str, Any]:
        type_counts = Counter(t.get("$type", "other") for t in self.tokens.values())
        return {
            "totalTokens": len(self.tokens),
            "errorCount": len(self.errors),
            "warningCount": len(self.warnings),
            "typeCounts": dict(sorted(type_counts.items())),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "tokens": self.tokens,
            "summary": self.summary,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
        }


def parse_project_key(project_key: str) -> tuple[str, str]:
    """Split ``"<client>/<project>"`` into its two segments."""
    client_id, _, project_id = project_key.partition("/")
    if not client_id or not project_id or "/" in project_id:
        raise RequestValidationFailed(
            'Invalid project path format. Expected "client/project"',
            code="INVALID_PROJECT_KEY",
        )
    return client_id, project_id


class ReferenceValidator:
    """Validates alias integrity across the tiered token tree."""

    def __init__(self, tokens_dir: str | Path, exclude: Iterable[Path] = ()) -> None:
        self.tokens_dir = Path(tokens_dir).resolve()
        self._exclude = {Path(p).resolve() for p in exclude}

    # ------------------------------------------------------------------
    # File discovery
    # ------------------------------------------------------------------

    def _json_files(self, directory: Path, recursive: bool = False) -> list[Path]:
        if not directory.is_dir():
            return []
        found = directory.rglob("*.json") if recursive else directory.glob("*.json")
        return sorted(p for p in found if p.is_file() and p.resolve() not in self._exclude)

    def token_files(self, project_key: Optional[str] = None) -> list[Path]:
        """Token files in override order: global, client, project.

        With ``project_key`` only that project's lineage is included.
        """
        global_dir = self.tokens_dir / "global"
        clients_dir = self.tokens_dir / "clients"

        files = self._json_files(global_dir, recursive=True)

        if project_key:
            client_id, project_id = parse_project_key(project_key)
            client_dir = clients_dir / client_id
            files += self._json_files(client_dir)
            files += self._json_files(client_dir / "projects" / project_id)
            return files

        # Loose files outside the tier directories rank with the global tier
        seen = set(files)
        tiered = set(self._json_files(clients_dir, recursive=True))
        files += [p for p in self._json_files(self.tokens_dir, recursive=True) if p not in seen and p not in tiered]

        client_dirs = sorted(d for d in clients_dir.iterdir() if d.is_dir()) if clients_dir.is_dir() else []
        for client_dir in client_dirs:
            files += self._json_files(client_dir)
        for client_dir in client_dirs:
            projects_dir = client_dir / "projects"
            if projects_dir.is_dir():
                for project_dir in sorted(d for d in projects_dir.iterdir() if d.is_dir()):
                    files += self._json_files(project_dir)
        return files

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self, project_key: Optional[str], report: ValidationReport) -> dict[str, dict]:
        """Merge all token files into a flat namespace; raw tokens keyed by path."""
        raw: dict[str, dict] = {}
        for path in self.token_files(project_key):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
                logger.warning("Skipping unreadable token file %s: %s", path, exc)
                report.issues.append(
                    ValidationIssue(
                        severity=Severity.WARNING,
                        code="FIGMA_FILE_UNREADABLE",
                        token=self._display_path(path),
                        message=f"Token file could not be parsed and was skipped: {exc}",
                    )
                )
                continue
            for token_path, token in iter_tokens(data):
                raw[token_path] = token
        return raw

    def _display_path(self, path: Path) -> str:
        try:
            return "/tokens/" + path.resolve().relative_to(self.tokens_dir).as_posix()
        except ValueError:
            return str(path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_export(self, project_key: Optional[str] = None) -> dict[str, dict]:
        """Flattened ``{path: {$value, $type, $description?}}`` map."""
        report = ValidationReport()
        return {path: to_dtcg(token) for path, token in self._load(project_key, report).items()}

    def validate(self, project_key: Optional[str] = None) -> ValidationReport:
        """Run the reference check. One namespace lookup per alias edge."""
        report = ValidationReport()
        raw = self._load(project_key, report)
        report.tokens = {path: to_dtcg(token) for path, token in raw.items()}

        for path, token in raw.items():
            _check_naming(path, report)
            _check_type(path, token, report)

        for edge in collect_edges(report.tokens):
            if edge.target not in report.tokens:
                report.issues.append(
                    ValidationIssue(
                        severity=Severity.ERROR,
                        code="FIGMA_REFERENCE_NOT_FOUND",
                        token=edge.owner,
                        ref=edge.raw,
                        message=f'Reference "{edge.target}" was not found in this export.',
                    )
                )

        logger.info(
            "Validated %d token(s): %d error(s), %d warning(s)",
            len(report.tokens),
            len(report.errors),
            len(report.warnings),
        )
        return report


def _check_naming(path: str, report: ValidationReport) -> None:
    if not TOKEN_NAME_PATTERN.match(path):
        report.issues.append(
            ValidationIssue(
                severity=Severity.WARNING,
                code="FIGMA_TOKEN_NAMING",
                token=path,
                message="Token name should use lowercase letters, numbers, dots, or hyphens.",
            )
        )


def _check_type(path: str, token: dict, report: ValidationReport) -> None:
    if not token.get("$type"):
        report.issues.append(
            ValidationIssue(
                severity=Severity.WARNING,
                code="FIGMA_TYPE_MISSING",
                token=path,
                message='Token has no "$type"; it will be exported as "other".',
            )
        )
