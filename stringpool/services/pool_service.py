import json
import os
from dataclasses import dataclass
from typing import List, Optional

from ..collaborators import (
    OccurrenceScanner,
    PatchDirective,
    build_patch_directives,
    collect_occurrences,
    directive_to_dict,
)
from ..config.settings import SettingsManager
from ..editing import PoolEditor
from ..errors import PoolSaveError
from ..merge import MergeStats, update_pool
from ..models import Pool
from ..persistence import load_pool, save_pool
from ..pool_builder import create_pool
from ..reporting import Reporter
from ..stats import format_statistics_report
from ..validator import ValidationReport, validate_pool
from ..xliff_io import XliffImportReport, export_xliff, import_xliff


@dataclass
class ExtractResult:
    pool: Pool
    validation: ValidationReport
    merge_stats: Optional[MergeStats] = None

    @property
    def was_update(self) -> bool:
        return self.merge_stats is not None


class PoolService:
    """
    The extract / update / validate / save pipeline behind the CLI.

    Keeps the pool operations free of file handling: this class decides where
    pools are read from and written to, using the project settings for
    anything the caller does not pass explicitly.
    """

    def __init__(self, settings: Optional[SettingsManager] = None, reporter: Optional[Reporter] = None):
        self.settings = settings or SettingsManager()
        self.reporter = reporter or Reporter()

    def mapping_path(self, mapping_file: Optional[str] = None) -> str:
        return mapping_file or self.settings.mapping_file

    def extract(self, scanner: OccurrenceScanner,
                mapping_file: Optional[str] = None,
                project_name: Optional[str] = None,
                update: bool = False) -> ExtractResult:
        """
        Builds or refreshes the pool from a complete scan and saves it.

        With update=True and an existing mapping file, the existing pool is
        merged with the scan so translations survive; otherwise a new pool is
        created (overwriting any previous file).
        """
        path = self.mapping_path(mapping_file)
        occurrences = collect_occurrences(scanner)

        merge_stats = None
        if update and os.path.exists(path):
            self.reporter.info(f"Updating existing pool: {path}")
            existing = load_pool(path)
            result = update_pool(
                existing, occurrences,
                keep_deleted=self.settings.keep_deleted,
                reporter=self.reporter,
            )
            pool, merge_stats = result.pool, result.stats
        else:
            if update:
                self.reporter.warning(f"No existing pool at {path}, creating a new one")
            pool = create_pool(
                occurrences,
                project_name=project_name or os.path.splitext(os.path.basename(path))[0],
                source_language=self.settings.source_language,
                target_language=self.settings.target_language,
                reporter=self.reporter,
            )

        save_pool(pool, path)
        validation = validate_pool(pool, strict=self.settings.strict, reporter=self.reporter)
        self._report_issues(validation)
        return ExtractResult(pool=pool, validation=validation, merge_stats=merge_stats)

    def validate(self, mapping_file: Optional[str] = None, strict: Optional[bool] = None) -> ValidationReport:
        pool = load_pool(self.mapping_path(mapping_file))
        report = validate_pool(
            pool,
            strict=self.settings.strict if strict is None else strict,
            reporter=self.reporter,
        )
        self._report_issues(report)
        return report

    def statistics(self, mapping_file: Optional[str] = None) -> str:
        return format_statistics_report(load_pool(self.mapping_path(mapping_file)))

    def directives(self, mapping_file: Optional[str] = None,
                   output_file: Optional[str] = None) -> List[PatchDirective]:
        pool = load_pool(self.mapping_path(mapping_file))
        directives = build_patch_directives(pool)
        self.reporter.info(f"{len(directives)} patch directives for {len(pool.units)} translations")

        if output_file:
            try:
                with open(output_file, "w", encoding="utf-8") as f:
                    json.dump([directive_to_dict(d) for d in directives], f, indent=2, ensure_ascii=False)
            except OSError as e:
                raise PoolSaveError(f"Could not write directives to {output_file}: {e}") from e
        return directives

    def export_xliff(self, output_file: str, mapping_file: Optional[str] = None):
        export_xliff(load_pool(self.mapping_path(mapping_file)), output_file)

    def import_xliff(self, xliff_file: str, mapping_file: Optional[str] = None) -> XliffImportReport:
        path = self.mapping_path(mapping_file)
        editor = PoolEditor(load_pool(path))
        report = import_xliff(editor, xliff_file)
        if editor.dirty:
            editor.save(path)
        return report

    def _report_issues(self, report: ValidationReport):
        for issue in report.errors:
            self.reporter.error(f"  [{issue.type}] {issue.message}")
        for issue in report.warnings:
            self.reporter.debug(f"  [{issue.type}] {issue.message}")
