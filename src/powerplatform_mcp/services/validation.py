# src/powerplatform_mcp/services/validation.py
"""
PipelineValidator: heuristic red flags over an assembled step set.

Each rule is a pure function ``(steps) -> [ValidationFinding]``. Rules live
in an ordered tuple, so adding one does not touch the assembly code and each
can be tested against a hand-built list of steps.

Only Update and Delete are checked for filtering attributes and images:
Create has no "before" state and filtering attributes do not apply to it.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from powerplatform_mcp.enums import StepMode, StepStatus
from powerplatform_mcp.models import PipelineStep, ValidationFinding, ValidationReport

CHANGE_MESSAGES = frozenset({"Update", "Delete"})

MISSING_FILTERING_ATTRIBUTES = "missing-filtering-attributes"
MISSING_IMAGES = "missing-images"


@dataclass(frozen=True)
class ValidationRule:
    name: str
    summary: str  # formatted with {count}
    check: Callable[[Sequence[PipelineStep]], List[ValidationFinding]]

    def issue(self, count: int) -> str:
        return self.summary.format(count=count)


def _flag(rule: str, steps: Sequence[PipelineStep], predicate) -> List[ValidationFinding]:
    return [ValidationFinding(rule=rule, step_name=s.name) for s in steps if predicate(s)]


def steps_without_filtering_attributes(steps: Sequence[PipelineStep]) -> List[ValidationFinding]:
    return _flag(
        MISSING_FILTERING_ATTRIBUTES,
        steps,
        lambda s: s.message in CHANGE_MESSAGES and not s.filtering_attributes,
    )


def steps_without_images(steps: Sequence[PipelineStep]) -> List[ValidationFinding]:
    return _flag(
        MISSING_IMAGES,
        steps,
        lambda s: s.message in CHANGE_MESSAGES and not s.images,
    )


DEFAULT_RULES = (
    ValidationRule(
        name=MISSING_FILTERING_ATTRIBUTES,
        summary="{count} Update/Delete steps without filtering attributes (performance concern)",
        check=steps_without_filtering_attributes,
    ),
    ValidationRule(
        name=MISSING_IMAGES,
        summary="{count} Update/Delete steps without images (may need entity data)",
        check=steps_without_images,
    ),
)


class PipelineValidator:
    def __init__(self, rules: Optional[Sequence[ValidationRule]] = None):
        self.rules = tuple(DEFAULT_RULES if rules is None else rules)

    def validate(self, steps: Sequence[PipelineStep]) -> ValidationReport:
        steps = list(steps)
        findings: List[ValidationFinding] = []
        issues: List[str] = []

        for rule in self.rules:
            rule_findings = rule.check(steps)
            if rule_findings:
                issues.append(rule.issue(len(rule_findings)))
            findings.extend(rule_findings)

        def names(rule_name: str) -> List[Optional[str]]:
            return [f.step_name for f in findings if f.rule == rule_name]

        return ValidationReport(
            has_disabled_steps=any(s.status_code != StepStatus.ENABLED for s in steps),
            has_async_steps=any(s.mode == StepMode.ASYNCHRONOUS for s in steps),
            has_sync_steps=any(s.mode == StepMode.SYNCHRONOUS for s in steps),
            steps_without_filtering_attributes=names(MISSING_FILTERING_ATTRIBUTES),
            steps_without_images=names(MISSING_IMAGES),
            potential_issues=issues,
            findings=findings,
        )
