"""
Guardrail trace generation and export.

This module documents guardrail decisions so a refused or flagged workout can
be reviewed later. Traces are exported to JSON and Markdown for human review
and auditability.
"""

import json
import uuid
from pathlib import Path
from typing import Optional

from trainguard.schemas import (
    GuardrailTrace,
    SafetyCheck,
    SafetyViolation,
    UserContext,
    ViolationSeverity,
)


class GuardrailTraceBuilder:
    """
    Builds and exports traces for guardrail decisions.

    The trace is the audit trail showing:
    - Which check ran, for whom, and against which context
    - Every violation in evaluation order
    - What the final decision was
    """

    def __init__(
        self,
        check_name: str,
        subject_id: str,
        context: Optional[UserContext] = None,
    ):
        """
        Initialize trace builder.

        Args:
            check_name: Name of the guardrail check (e.g. 'workout')
            subject_id: User or workout the check was about
            context: User context the check was evaluated against
        """
        self.trace = GuardrailTrace(
            check_name=check_name,
            subject_id=subject_id,
            context=context,
        )

    def add_violation(self, violation: SafetyViolation) -> None:
        self.trace.violations.append(violation)
        self._update_result()

    def add_note(self, note: str) -> None:
        self.trace.notes.append(note)

    def record_check(self, check: SafetyCheck) -> None:
        """Copy all violations of a finished check into the trace."""
        for violation in check.violations:
            self.trace.violations.append(violation)
        self._update_result()

    def _update_result(self) -> None:
        severities = {v.severity for v in self.trace.violations}
        if ViolationSeverity.ERROR in severities:
            self.trace.result = "refused"
        elif ViolationSeverity.WARNING in severities:
            self.trace.result = "warning"
        else:
            self.trace.result = "approved"

    def export_to_json(self) -> dict:
        """
        Export trace to JSON-serializable dictionary.

        Returns:
            Dictionary representation of the trace
        """
        return self.trace.model_dump(mode="json")

    def export_to_markdown(self) -> str:
        """
        Export trace to human-readable Markdown format.

        Returns:
            Markdown-formatted trace report
        """
        lines = []

        lines.append("# Guardrail Trace")
        lines.append("")
        lines.append(f"**Timestamp:** {self.trace.timestamp.strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append(f"**Check:** `{self.trace.check_name}`")
        lines.append(f"**Subject:** `{self.trace.subject_id}`")
        lines.append(f"**Result:** **{self.trace.result.upper()}**")
        lines.append("")

        context = self.trace.context
        if context is not None:
            lines.append("## Context")
            lines.append("")
            lines.append(f"- **Age:** {context.age if context.age is not None else 'unknown'}")
            lines.append(f"- **Fitness Level:** {context.fitness_level.value}")
            lines.append(f"- **Experience:** {context.training_experience_months} months")
            lines.append(f"- **Injuries:** {', '.join(context.injuries) or 'none'}")
            lines.append("")

        lines.append("---")
        lines.append("")
        lines.append("## Violations")
        lines.append("")

        if not self.trace.violations:
            lines.append("✅ **No guardrail violations detected**")
            lines.append("")
        else:
            errors = [v for v in self.trace.violations if v.severity == ViolationSeverity.ERROR]
            warnings = [v for v in self.trace.violations if v.severity == ViolationSeverity.WARNING]
            lines.append(f"**Violations:** {len(errors)} errors, {len(warnings)} warnings")
            lines.append("")

            for i, violation in enumerate(self.trace.violations, 1):
                icon = "⛔" if violation.severity == ViolationSeverity.ERROR else "⚠️"
                lines.append(f"### {i}. {icon} `{violation.code}`")
                if violation.field:
                    lines.append(f"- **Field:** `{violation.field}`")
                lines.append(f"- **Message:** {violation.message}")
                if violation.original_value is not None:
                    lines.append(f"- **Value:** `{violation.original_value}`")
                if violation.safe_value is not None:
                    lines.append(f"- **Safe Value:** `{violation.safe_value}`")
                lines.append("")

        if self.trace.notes:
            lines.append("## Notes")
            lines.append("")
            for note in self.trace.notes:
                lines.append(f"- {note}")
            lines.append("")

        lines.append("---")
        lines.append("")
        lines.append("## Final Decision")
        lines.append("")

        if self.trace.result == "approved":
            lines.append("✅ **APPROVED**")
        elif self.trace.result == "warning":
            lines.append("⚠️ **APPROVED WITH WARNINGS**")
        else:
            lines.append("⛔ **REFUSED**")
            lines.append("")
            lines.append("The candidate must not be applied as-is. Correct or regenerate it.")

        return "\n".join(lines)

    def save_to_file(self, output_dir: Path, format: str = "json") -> Path:
        """
        Save trace to file in specified format.

        Args:
            output_dir: Directory to save trace file
            format: Output format ("json" or "markdown")

        Returns:
            Path to saved file

        Raises:
            ValueError: If format is not supported
        """
        if format not in ("json", "markdown"):
            raise ValueError(f"Unsupported format: {format}. Use 'json' or 'markdown'")

        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp_str = self.trace.timestamp.strftime("%Y%m%d_%H%M%S")
        subject_id = self.trace.subject_id.replace(" ", "_")
        suffix = uuid.uuid4().hex[:8]
        stem = f"trace_{self.trace.check_name}_{subject_id}_{timestamp_str}_{suffix}"

        if format == "json":
            filepath = output_dir / f"{stem}.json"
            with open(filepath, "w") as f:
                json.dump(self.export_to_json(), f, indent=2, default=str)
        else:
            filepath = output_dir / f"{stem}.md"
            with open(filepath, "w") as f:
                f.write(self.export_to_markdown())

        return filepath


def save_trace_from_check(
    check: SafetyCheck,
    check_name: str,
    subject_id: str,
    output_dir: Path,
    context: Optional[UserContext] = None,
    format: str = "json",
) -> Path:
    """Convenience function to save a trace straight from a SafetyCheck."""
    builder = GuardrailTraceBuilder(check_name, subject_id, context)
    builder.record_check(check)
    return builder.save_to_file(output_dir, format)


def load_trace_from_file(filepath: Path) -> GuardrailTrace:
    """
    Load a guardrail trace from JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If JSON is invalid
    """
    if not filepath.exists():
        raise FileNotFoundError(f"Trace file not found: {filepath}")

    with open(filepath, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid trace file: {e}")

    try:
        return GuardrailTrace(**data)
    except Exception as e:
        raise ValueError(f"Invalid trace file: {e}")
