#!/usr/bin/env python
"""
Unit tests for quarter routing
"""

import sys
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from timesheet_bot.config import AutomationConfig
from timesheet_bot.exceptions import RoutingError, SubmissionCancelledError
from timesheet_bot.models.entry import TimesheetEntry
from timesheet_bot.models.form import QuarterDefinition
from timesheet_bot.models.results import CANCELLED_MESSAGE, SubmissionOutcome
from timesheet_bot.services.automation.abort import AbortController
from timesheet_bot.services.quarter_router import (
    INVALID_QUARTER, QuarterRegistry, build_mock_form_target, create_form_target,
    group_entries_by_quarter, map_results_to_ids, process_entries_by_quarter
)


def entry(entry_id, day, hours=8.0):
    return TimesheetEntry(date=day, project="A", task_description="Work", hours=hours, id=entry_id)


def succeed_all(rows, credentials, target, progress, abort_signal):
    return SubmissionOutcome(ok=True, submitted=list(range(len(rows))))


async def run(entries, run_bot, **kwargs):
    return await process_entries_by_quarter(
        entries,
        to_bot_row=TimesheetEntry.to_bot_row,
        run_bot=run_bot,
        email="user@example.com",
        password="secret",
        **kwargs,
    )


class TestQuarterRegistry:

    def setup_method(self):
        self.registry = QuarterRegistry()

    def test_resolves_builtin_quarters(self):
        assert self.registry.resolve("10/15/2025").id == "Q4-2025"
        assert self.registry.resolve("2026-03-31").id == "Q1-2026"

    def test_unconfigured_date(self):
        assert self.registry.resolve("01/10/2025") is None
        with pytest.raises(RoutingError) as exc_info:
            self.registry.require("01/10/2025")
        assert exc_info.value.quarter_key == "Q1-2025"

    def test_availability_message_lists_quarters(self):
        message = self.registry.validate_quarter_availability("07/04/2024")
        assert "Q4-2025, Q1-2026" in message
        assert self.registry.validate_quarter_availability("11/11/2025") is None

    def test_current_quarter(self):
        assert self.registry.current(date(2025, 11, 3)).id == "Q4-2025"
        assert self.registry.current(date(2030, 1, 1)) is None

    def test_get_by_id(self):
        assert self.registry.get_by_id("Q1-2026").form_id == "019b5b17a03a79ac9437e45996f49f4f"
        assert self.registry.get_by_id("Q9-2020") is None


class TestFormTargets:

    def test_smartsheet_target(self):
        target = create_form_target("https://app.smartsheet.com/b/form/abc", "abc", "Q4-2025")
        assert target.submission_endpoint == "https://forms.smartsheet.com/api/submit/abc"
        assert target.quarter_id == "Q4-2025"
        assert "**forms.smartsheet.com/api/submit/abc" in target.success_url_patterns

    def test_mock_target(self):
        config = AutomationConfig(mock_website_url="http://localhost:3000/", mock_form_id="mock1")
        target = build_mock_form_target(config, "Q1-2026")
        assert target.base_url == "http://localhost:3000/form/mock1"
        assert target.submission_endpoint == "http://localhost:3000/api/submit/mock1"
        assert target.success_url_patterns == ("**localhost:3000/api/submit/**", "**localhost:3000/**")


class TestGrouping:

    def test_groups_in_first_occurrence_order(self):
        entries = [entry(1, "01/05/2026"), entry(2, "10/15/2025"), entry(3, "02/01/2026"), entry(4, "junk")]
        groups = group_entries_by_quarter(entries)
        assert list(groups) == ["Q1-2026", "Q4-2025", INVALID_QUARTER]
        assert [e.id for e in groups["Q1-2026"]] == [1, 3]

    def test_map_results_to_ids(self):
        outcome = SubmissionOutcome(ok=False, submitted=[0, 2, 7], errors=[(1, "bad"), (-1, "bad")])
        assert map_results_to_ids(outcome, [10, 11, None]) == ([10], [11])


class TestProcessEntriesByQuarter:

    @pytest.mark.asyncio
    async def test_all_quarters_succeed(self):
        run_bot = AsyncMock(side_effect=succeed_all)
        entries = [entry(1, "10/15/2025"), entry(2, "01/05/2026"), entry(3, "11/01/2025")]
        result = await run(entries, run_bot)

        assert result.ok is True
        assert result.submitted_ids == [1, 3, 2]
        assert result.removed_ids == []
        assert result.total_processed == 3
        assert run_bot.await_count == 2

        rows, credentials, target, progress, abort_signal = run_bot.await_args_list[0].args
        assert [row["Date"] for row in rows] == ["10/15/2025", "11/01/2025"]
        assert credentials.identity == "user@example.com"
        assert target.quarter_id == "Q4-2025"
        assert callable(progress)

    @pytest.mark.asyncio
    async def test_unroutable_group_fails_but_others_run(self):
        run_bot = AsyncMock(side_effect=succeed_all)
        entries = [entry(1, "07/04/2024"), entry(2, "10/15/2025")]
        result = await run(entries, run_bot)

        assert result.ok is False
        assert result.submitted_ids == [2]
        assert result.removed_ids == [1]
        assert "Q3-2024" in result.error
        run_bot.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_registry_routes_other_quarters(self):
        registry = QuarterRegistry([QuarterDefinition("Q1-2025", "Q1 2025", "2025-01-01", "2025-03-31",
                                                      "https://example.test/form/q1", "q1")])
        run_bot = AsyncMock(side_effect=succeed_all)
        result = await run([entry(7, "01/10/2025")], run_bot, registry=registry)
        assert result.ok is True
        assert result.submitted_ids == [7]

    @pytest.mark.asyncio
    async def test_raising_submitter_fails_only_its_group(self):
        async def run_bot(rows, credentials, target, progress, abort_signal):
            if target.quarter_id == "Q4-2025":
                raise RuntimeError("browser crashed")
            return succeed_all(rows, credentials, target, progress, abort_signal)

        entries = [entry(1, "10/15/2025"), entry(2, "01/05/2026")]
        result = await run(entries, run_bot)
        assert result.ok is False
        assert result.submitted_ids == [2]
        assert result.removed_ids == [1]

    @pytest.mark.asyncio
    async def test_row_conversion_error_fails_only_its_group(self):
        def to_bot_row(item):
            if item.id == 2:
                raise ValueError("bad row")
            return item.to_bot_row()

        run_bot = AsyncMock(side_effect=succeed_all)
        entries = [entry(1, "10/15/2025"), entry(2, "01/05/2026"), entry(3, "02/02/2026")]
        result = await process_entries_by_quarter(entries, to_bot_row=to_bot_row, run_bot=run_bot,
                                                  email="user@example.com", password="secret")

        assert result.ok is False
        assert result.submitted_ids == [1]
        assert result.removed_ids == [2, 3]
        assert run_bot.await_count == 1

    @pytest.mark.asyncio
    async def test_row_errors_map_to_removed_ids(self):
        run_bot = AsyncMock(return_value=SubmissionOutcome(ok=False, submitted=[1], errors=[(0, "Hours bad")]))
        result = await run([entry(5, "10/15/2025", hours=30), entry(6, "10/16/2025")], run_bot)
        assert result.submitted_ids == [6]
        assert result.removed_ids == [5]
        assert result.error == "Some rows failed in: Q4-2025"

    @pytest.mark.asyncio
    async def test_abort_after_first_quarter_skips_the_rest(self):
        controller = AbortController()
        calls = []

        async def run_bot(rows, credentials, target, progress, abort_signal):
            calls.append(target.quarter_id)
            controller.abort("user cancelled")
            return succeed_all(rows, credentials, target, progress, abort_signal)

        entries = [entry(1, "10/15/2025"), entry(2, "01/05/2026")]
        result = await run(entries, run_bot, abort_signal=controller.signal)

        assert calls == ["Q4-2025"]
        assert result.ok is False
        assert result.cancelled is True
        assert result.error == CANCELLED_MESSAGE
        assert result.submitted_ids == [1]
        assert 2 not in result.submitted_ids + result.removed_ids

    @pytest.mark.asyncio
    async def test_cancelled_outcome_stops_processing(self):
        run_bot = AsyncMock(return_value=SubmissionOutcome(ok=False, submitted=[0], cancelled=True))
        entries = [entry(1, "10/15/2025"), entry(2, "10/16/2025"), entry(3, "01/05/2026")]
        result = await run(entries, run_bot)

        run_bot.assert_awaited_once()
        assert result.cancelled is True
        assert result.submitted_ids == [1]
        assert result.removed_ids == []

    @pytest.mark.asyncio
    async def test_cancellation_exception_is_reported_as_cancelled(self):
        run_bot = AsyncMock(side_effect=SubmissionCancelledError("Submission"))
        result = await run([entry(1, "10/15/2025")], run_bot)
        assert result.cancelled is True
        assert result.submitted_ids == []
        assert result.removed_ids == []

    @pytest.mark.asyncio
    async def test_progress_is_scaled_per_quarter(self):
        callback = MagicMock()

        async def run_bot(rows, credentials, target, progress, abort_signal):
            progress(100, f"{target.quarter_id} done")
            return succeed_all(rows, credentials, target, progress, abort_signal)

        await run([entry(1, "10/15/2025"), entry(2, "01/05/2026")], run_bot, progress_callback=callback)
        assert [c.args[0] for c in callback.call_args_list] == [50, 100]

    @pytest.mark.asyncio
    async def test_mock_website_target(self):
        run_bot = AsyncMock(side_effect=succeed_all)
        config = AutomationConfig(mock_website_url="http://localhost:3000", mock_form_id="mock1")
        await run([entry(1, "10/15/2025")], run_bot, use_mock_website=True, config=config)
        target = run_bot.await_args.args[2]
        assert target.base_url == "http://localhost:3000/form/mock1"
        assert target.quarter_id == "Q4-2025"

    @pytest.mark.asyncio
    async def test_entries_without_ids_are_not_reported(self):
        run_bot = AsyncMock(side_effect=succeed_all)
        result = await run([entry(None, "10/15/2025"), entry(9, "10/16/2025")], run_bot)
        assert result.submitted_ids == [9]
        assert result.total_processed == 2
