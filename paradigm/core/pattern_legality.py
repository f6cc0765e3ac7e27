"""Pattern Legality — declared slot_count must match the skeleton's slot tokens.

Invariants:
    - A template is legal iff slot_count == count_slots(skeleton)
    - Findings keep input order
"""

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from paradigm.core.binding_generator import count_slots


class DeclaredTemplate(Protocol):
    id: int
    name: str | None
    skeleton: str
    slot_count: int | None


@dataclass(frozen=True)
class PatternLegalityFinding:
    pattern_id: int
    pattern_name: str
    slot_count: int | None
    detected_slots: int
    skeleton: str


@dataclass
class PatternLegalityReport:
    id: str = "morphology.patternLegality"
    name: str = "Pattern legality (slot count vs skeleton)"
    description: str = (
        "Checks that a pattern's slot count matches the number of slot "
        "placeholders present in its skeleton string."
    )
    status: str = "pass"
    summary: str = ""
    pattern_count: int = 0
    findings: list[PatternLegalityFinding] = field(default_factory=list)


def find_slot_count_mismatches(
    templates: Iterable[DeclaredTemplate],
) -> list[PatternLegalityFinding]:
    findings = []
    for template in templates:
        detected = count_slots(template.skeleton or "")
        if detected != template.slot_count:
            findings.append(PatternLegalityFinding(
                pattern_id=template.id,
                pattern_name=template.name or f"Pattern #{template.id}",
                slot_count=template.slot_count,
                detected_slots=detected,
                skeleton=template.skeleton or "",
            ))
    return findings


def build_legality_report(templates: list[DeclaredTemplate]) -> PatternLegalityReport:
    findings = find_slot_count_mismatches(templates)
    missing = len(findings)
    if missing == 0:
        summary = "All patterns have matching slot counts and skeleton placeholders."
    else:
        plural = "" if missing == 1 else "s"
        summary = (
            f"{missing} pattern{plural} have slot count and skeleton "
            "placeholder mismatches."
        )
    return PatternLegalityReport(
        status="pass" if missing == 0 else "fail",
        summary=summary,
        pattern_count=len(templates),
        findings=findings,
    )
