"""Outcome aggregation and the end-of-run summary."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Dict, List

from rich.markup import escape

from flatpakmigrator.models import MigrationOutcome, OutcomePhase

INSTALLED_PHASES = (OutcomePhase.INSTALLED_TARGET, OutcomePhase.INSTALLED_SYSTEM)
REMOVED_PHASES = (OutcomePhase.REMOVED_LEGACY,)
FAILED_PHASES = (OutcomePhase.FAILED,)


class ReportService:
    """Collects outcomes in the order they happen and renders them by phase."""

    BUCKET_TITLES = (
        ("installed", "[green]Installed:[/green]"),
        ("removed", "[green]Removed apt/Snap packages:[/green]"),
        ("other", "[cyan]Other actions:[/cyan]"),
    )

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console
        self.outcomes: List[MigrationOutcome] = []

    def record(self, outcome: MigrationOutcome):
        self.outcomes.append(outcome)
        if outcome.phase in FAILED_PHASES:
            self.console.print(f"[red]{escape(outcome.detail)}[/red]")
            self.logger.error(outcome.detail)
        else:
            self.console.print(f"[green]{escape(outcome.detail)}[/green]")
            self.logger.debug("%s: %s", outcome.phase.value, outcome.detail)

    @property
    def failures(self) -> List[MigrationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.phase in FAILED_PHASES]

    def buckets(self) -> Dict[str, List[MigrationOutcome]]:
        grouped: Dict[str, List[MigrationOutcome]] = {
            "installed": [],
            "removed": [],
            "other": [],
            "failed": [],
        }
        for outcome in self.outcomes:
            if outcome.phase in INSTALLED_PHASES:
                grouped["installed"].append(outcome)
            elif outcome.phase in REMOVED_PHASES:
                grouped["removed"].append(outcome)
            elif outcome.phase in FAILED_PHASES:
                grouped["failed"].append(outcome)
            else:
                grouped["other"].append(outcome)
        return grouped

    def render(self):
        try:
            grouped = self.buckets()
            self.console.print("\n[cyan]Summary of actions taken:[/cyan]")
            for key, title in self.BUCKET_TITLES:
                self.console.print(title)
                for outcome in grouped[key]:
                    self.console.print(f" - {outcome.detail}", markup=False)

            if grouped["failed"]:
                self.console.print("\n[red]Summary of failed actions:[/red]")
                for outcome in grouped["failed"]:
                    self.console.print(f" - {outcome.detail}", markup=False)
        except Exception as exc:
            self.logger.warning("Could not render summary: %s", exc)

    def write_json(self, report_file: str) -> bool:
        grouped = self.buckets()
        payload = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "counts": {key: len(items) for key, items in grouped.items()},
            "outcomes": [
                {
                    "display_name": outcome.display_name,
                    "phase": outcome.phase.value,
                    "detail": outcome.detail,
                    "source": outcome.source.value if outcome.source else None,
                }
                for outcome in self.outcomes
            ],
        }

        temp_path = None
        try:
            os.makedirs(os.path.dirname(report_file) or ".", exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix="migration-report-",
                suffix=".json",
                dir=os.path.dirname(os.path.abspath(report_file)),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(payload, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", report_file, exc)
            if temp_path:
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
            return False
        return True
