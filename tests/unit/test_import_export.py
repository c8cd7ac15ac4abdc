"""Tests for JSON export and import.

Tests verify:
- Export writes a camelCase JSON array
- Import restores exported state exactly
- Malformed input and invalid items are reported and change nothing
- Merge mode adds only unseen ids
- Replace mode drops interviews of vanished applications
"""

import json

from jobtracker.models.application import Application, FinalResult
from jobtracker.services.application_engine import ApplicationEngine
from jobtracker.services.interview_service import InterviewService
from tests.conftest import FROZEN_NOW, create_app, interview_payload


async def _populated(engine: ApplicationEngine) -> tuple[Application, Application]:
    first = await create_app(engine, skill_tags=["Python", "SQL"], expected_salary=90000)
    second = await create_app(engine, company_name="Globex", current_stage=3)
    await engine.add_interaction(first.id, {"type": "hr_called", "notes": "Intro"})
    await engine.close_application(second.id, "ghosted")
    return first, second


class TestExport:
    """export_data."""

    async def test_camel_case_array(self, engine: ApplicationEngine) -> None:
        """Export is a JSON array of camelCase documents."""
        await _populated(engine)
        exported = json.loads(engine.export_data())
        assert isinstance(exported, list)
        assert len(exported) == 2
        assert exported[0]["companyName"] == "Acme"
        assert exported[0]["skillTags"] == ["Python", "SQL"]
        assert exported[1]["finalResult"] == "ghosted"
        assert "followUpTracker" in exported[0]

    async def test_empty_collection(self, engine: ApplicationEngine) -> None:
        """No applications export as an empty array."""
        assert engine.export_data() == "[]"


class TestImport:
    """import_data in replace and merge modes."""

    async def test_round_trip_restores_state(self, engine: ApplicationEngine) -> None:
        """Importing an export restores the same records."""
        await _populated(engine)
        before = [app.model_dump() for app in engine.get_all()]
        text = engine.export_data()

        await engine.import_data("[]")
        assert engine.get_all() == []

        result = await engine.import_data(text)
        assert result.success
        assert result.data == 2
        assert [app.model_dump() for app in engine.get_all()] == before

    async def test_invalid_json(self, engine: ApplicationEngine) -> None:
        """Unparseable text is reported."""
        result = await engine.import_data("{not json")
        assert result.errors == ["Invalid JSON format"]

    async def test_not_an_array(self, engine: ApplicationEngine) -> None:
        """A JSON object is not accepted."""
        result = await engine.import_data('{"companyName": "Acme"}')
        assert result.errors == ["Invalid data format: expected array"]

    async def test_reports_every_bad_item_and_changes_nothing(
        self, engine: ApplicationEngine
    ) -> None:
        """Each bad item is reported by index and state is untouched."""
        existing = await create_app(engine)
        payload = json.dumps(
            [
                {"id": "app_1", "companyName": "Acme", "role": "SRE"},
                {"id": "app_2", "companyName": "", "role": "SRE"},
                {"id": "app_3", "companyName": "X", "role": "Y", "currentStage": 9},
                {"id": "app_4", "companyName": "X", "role": "Y", "currentStage": 0},
                {"id": "app_1", "companyName": "Dup", "role": "SRE"},
            ]
        )
        result = await engine.import_data(payload)
        assert result.code == "VALIDATION_ERROR"
        assert result.errors == [
            "Item 1: Company name is required",
            "Item 2: Invalid stage: 9",
            "Item 3: Closed application has no final result",
            "Item 4: Duplicate id: app_1",
        ]
        assert engine.get_all() == [existing]

    async def test_unknown_fields_ignored(self, engine: ApplicationEngine) -> None:
        """Extra keys in imported items are dropped."""
        payload = json.dumps(
            [{"companyName": "Acme", "role": "SRE", "favouriteColour": "teal"}]
        )
        result = await engine.import_data(payload)
        assert result.success
        assert engine.get_all()[0].company_name == "Acme"

    async def test_merge_adds_only_new_ids(self, engine: ApplicationEngine) -> None:
        """Merge keeps existing records and adds unseen ones."""
        existing = await create_app(engine)
        payload = json.dumps(
            [
                {"id": existing.id, "companyName": "Changed", "role": "SRE"},
                {
                    "id": "app_new",
                    "companyName": "Globex",
                    "role": "SRE",
                    "currentStage": 0,
                    "finalResult": "rejected",
                },
            ]
        )
        result = await engine.import_data(payload, merge=True)
        assert result.data == 1
        assert engine.get_by_id(existing.id).company_name == "Acme"
        assert engine.get_by_id("app_new").final_result is FinalResult.REJECTED

    async def test_replace_drops_orphaned_interviews(
        self, engine: ApplicationEngine, interview_service: InterviewService
    ) -> None:
        """Interviews of replaced applications are deleted."""
        app = await create_app(engine)
        await engine.schedule_interview(app.id, interview_payload(FROZEN_NOW))
        await engine.import_data(json.dumps([{"companyName": "New", "role": "SRE"}]))
        assert interview_service.get_all() == []
