from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import TemplateError
from .models import Pool, TranslationUnit, UnitKind
from .reporting import Reporter, resolve_reporter
from .template_codec import count_tokens, token_indices, validate_template


@dataclass
class ValidationIssue:
    type: str  # 'EmptyKey', 'NotTranslated', 'PlaceholderCountMismatch', 'DuplicateKey', ...
    severity: str  # 'error', 'warning'
    message: str
    key: str = ""
    details: Any = None


@dataclass
class ValidationReport:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, issue: ValidationIssue):
        if issue.severity == "error":
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def error(self, type_: str, key: str, message: str, details: Any = None):
        self.add(ValidationIssue(type_, "error", message, key, details))

    def warning(self, type_: str, key: str, message: str, details: Any = None):
        self.add(ValidationIssue(type_, "warning", message, key, details))


class PoolValidator:
    """
    Structural and placeholder checks over a whole pool.

    Problems are accumulated, never raised: the report says whether the pool is
    usable (no errors) and what deserves a look (warnings).
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def validate(self, pool: Pool) -> ValidationReport:
        report = ValidationReport()

        for unit in pool.units:
            self.check_unit(unit, report)

        duplicates = Counter(u.key for u in pool.units)
        for key, count in duplicates.items():
            if count > 1:
                report.error("DuplicateKey", key, f"Duplicate translation key: {key} ({count} units)")

        return report

    def check_unit(self, unit: TranslationUnit, report: ValidationReport):
        label = unit.key or repr(unit.source_text)

        if not unit.key or not unit.key.strip():
            report.error("EmptyKey", unit.key, f"Translation for '{unit.source_text}' has empty key")

        if not unit.source_text or not unit.source_text.strip():
            report.error("EmptySource", unit.key, f"Translation {label} has empty source text")

        if self.strict and (not unit.target_text or not unit.target_text.strip()
                            or unit.target_text == unit.source_text):
            report.error("NotTranslated", unit.key, f"Translation {label} is not translated (strict mode)")

        if unit.kind == UnitKind.PARAMETERIZED and unit.placeholders:
            self.check_placeholders(unit, report)

        if not unit.contexts:
            report.warning("NoContexts", unit.key, f"Translation {label} has no contexts")
        else:
            for context in unit.contexts:
                if "\\" in context.file_path:
                    report.warning(
                        "WindowsPath", unit.key,
                        f"Translation {label} at {context.file_path} has Windows-style path separators",
                    )

    def check_placeholders(self, unit: TranslationUnit, report: ValidationReport):
        # Nothing to compare against until a target exists
        if not unit.target_text or not unit.target_text.strip():
            return

        try:
            validate_template(unit.source_text, unit.placeholders)
        except TemplateError as e:
            report.error(e.type, unit.key, f"Translation {unit.key}: source text: {e}")

        expected = len(unit.placeholders)
        found = count_tokens(unit.target_text)
        if found != expected:
            report.error(
                "PlaceholderCountMismatch", unit.key,
                f"Translation {unit.key}: placeholder count mismatch: "
                f"source has {expected}, translation has {found}",
                details={"expected": expected, "found": found},
            )

        present = set(token_indices(unit.target_text))
        known = {p.index for p in unit.placeholders}
        for index in sorted(present - known):
            report.error(
                "UnresolvedPlaceholder", unit.key,
                f"Translation {unit.key}: placeholder {{{index}}} in translated text "
                f"has no matching expression",
                details=f"{{{index}}}",
            )

        missing = [f"{{{i}}}" for i in range(expected) if i not in present]
        for token in missing:
            # translators may drop a visible token on purpose
            report.warning(
                "MissingToken", unit.key,
                f"Translation {unit.key}: missing placeholder {token} in translated text",
                details=token,
            )


def validate_pool(pool: Pool, strict: bool = False,
                  reporter: Optional[Reporter] = None) -> ValidationReport:
    reporter = resolve_reporter(reporter)
    reporter.info(f"Validating pool '{pool.project_name}' (strict={strict})...")

    report = PoolValidator(strict=strict).validate(pool)

    if report.is_valid:
        reporter.info(
            f"Validation passed: {len(pool.units)} translations, {len(report.warnings)} warnings"
        )
    else:
        reporter.error(
            f"Validation failed: {len(report.errors)} errors, {len(report.warnings)} warnings"
        )
    return report
