"""Pattern Validator — legality report over every stored template.

Invariants:
    - Read-only: reports mismatches, never repairs slot_count
"""

from paradigm.core.pattern_legality import PatternLegalityReport, build_legality_report
from paradigm.core.repository_protocols import TemplateReader


async def validate_pattern_legality(templates: TemplateReader) -> PatternLegalityReport:
    return build_legality_report(list(await templates.list_all()))
