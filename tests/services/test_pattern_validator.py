"""Pattern validator — legality report read from the stored patterns."""

from paradigm.services.pattern_validator import validate_pattern_legality
from paradigm.services.readers import SqlTemplateReader


async def test_report_flags_stored_mismatch(db, seed):
    await seed(patterns=[("Form I", "C-a-C-a-C", 3), ("Broken", "C-a-C", 4)])

    report = await validate_pattern_legality(SqlTemplateReader(db))

    assert report.status == "fail"
    assert report.pattern_count == 2
    assert [(f.pattern_id, f.pattern_name) for f in report.findings] == [(2, "Broken")]
    assert report.findings[0].detected_slots == 2


async def test_empty_store_passes(db):
    report = await validate_pattern_legality(SqlTemplateReader(db))
    assert report.status == "pass"
    assert report.pattern_count == 0
