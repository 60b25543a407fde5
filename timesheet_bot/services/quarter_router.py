"""
Quarter-based routing of timesheet entries

Each calendar quarter has its own web form. Entries are grouped by the
quarter their date falls in, every group is submitted to its quarter's form,
and the batch-local row indices returned by the submitter are translated
back to entry ids.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import (
    Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
)

from ..config import AutomationConfig
from ..exceptions import RoutingError, SubmissionCancelledError
from ..models.entry import TimesheetEntry, quarter_key, to_iso_date
from ..models.form import Credentials, FormTarget, QuarterDefinition
from ..models.results import AggregateResult, QuarterResult, SubmissionOutcome
from .automation.abort import AbortSignal
from .automation.progress import ProgressCallback, ProgressChannel
from .result_aggregator import ResultAggregator

logger = logging.getLogger(__name__)

INVALID_QUARTER = "INVALID"

SMARTSHEET_FORM_BASE_URL = "https://app.smartsheet.com/b/form"
SMARTSHEET_SUBMIT_BASE_URL = "https://forms.smartsheet.com/api/submit"

QUARTER_DEFINITIONS: List[QuarterDefinition] = [
    QuarterDefinition(
        id="Q4-2025",
        name="Q4 2025",
        start_date="2025-10-01",
        end_date="2025-12-31",
        form_url=f"{SMARTSHEET_FORM_BASE_URL}/0199fabee6497e60abb6030c48d84585",
        form_id="0199fabee6497e60abb6030c48d84585",
    ),
    QuarterDefinition(
        id="Q1-2026",
        name="Q1 2026",
        start_date="2026-01-01",
        end_date="2026-03-31",
        form_url=f"{SMARTSHEET_FORM_BASE_URL}/019b5b17a03a79ac9437e45996f49f4f",
        form_id="019b5b17a03a79ac9437e45996f49f4f",
    ),
]

RunBot = Callable[..., Awaitable[SubmissionOutcome]]


def create_form_target(form_url: str, form_id: str, quarter_id: Optional[str] = None) -> FormTarget:
    """Form target for a Smartsheet form"""
    return FormTarget(
        base_url=form_url,
        form_id=form_id,
        submission_endpoint=f"{SMARTSHEET_SUBMIT_BASE_URL}/{form_id}",
        success_url_patterns=(
            f"**forms.smartsheet.com/api/submit/{form_id}",
            "**forms.smartsheet.com/**",
            "**app.smartsheet.com/**",
        ),
        quarter_id=quarter_id,
    )


def build_mock_form_target(config: AutomationConfig, quarter_id: Optional[str] = None) -> FormTarget:
    """Form target for the local mock website"""
    base = config.mock_website_url.rstrip("/")
    domain = base.split("://", 1)[-1]
    form_id = config.mock_form_id
    return FormTarget(
        base_url=f"{base}/form/{form_id}",
        form_id=form_id,
        submission_endpoint=f"{base}/api/submit/{form_id}",
        success_url_patterns=(f"**{domain}/api/submit/**", f"**{domain}/**"),
        quarter_id=quarter_id,
    )


class QuarterRegistry:
    """Resolves dates to quarter definitions"""

    def __init__(self, definitions: Optional[Sequence[QuarterDefinition]] = None):
        self.definitions: List[QuarterDefinition] = list(QUARTER_DEFINITIONS if definitions is None else definitions)

    def resolve(self, value: Any) -> Optional[QuarterDefinition]:
        iso = to_iso_date(value)
        if iso is None:
            return None
        for definition in self.definitions:
            if definition.contains(iso):
                return definition
        return None

    def get_by_id(self, quarter_id: str) -> Optional[QuarterDefinition]:
        for definition in self.definitions:
            if definition.id == quarter_id:
                return definition
        return None

    def current(self, today: Optional[date] = None) -> Optional[QuarterDefinition]:
        return self.resolve((today or date.today()).isoformat())

    def require(self, value: Any) -> QuarterDefinition:
        definition = self.resolve(value)
        if definition is None:
            raise RoutingError(str(value), quarter_key(value))
        return definition

    def validate_quarter_availability(self, value: Any) -> Optional[str]:
        """Error message when no form accepts the date, else None"""
        try:
            self.require(value)
        except RoutingError as e:
            available = ", ".join(definition.id for definition in self.definitions)
            return f"{e.message}. Available quarters: {available}"
        return None


def quarter_key_for(value: Any) -> str:
    return quarter_key(value) or INVALID_QUARTER


def group_entries_by_quarter(entries: Sequence[TimesheetEntry]) -> "OrderedDict[str, List[TimesheetEntry]]":
    """Partition entries by quarter, ordering groups by first occurrence"""
    groups: "OrderedDict[str, List[TimesheetEntry]]" = OrderedDict()
    for entry in entries:
        groups.setdefault(quarter_key_for(entry.date), []).append(entry)
    return groups


def map_results_to_ids(outcome: SubmissionOutcome,
                       ids: Sequence[Optional[int]]) -> Tuple[List[int], List[int]]:
    """Translate batch indices to entry ids, dropping out-of-range indices and missing ids"""
    submitted = [ids[i] for i in outcome.submitted if 0 <= i < len(ids)]
    failed = [ids[i] for i, _ in outcome.errors if 0 <= i < len(ids)]
    return ([row_id for row_id in submitted if row_id is not None],
            [row_id for row_id in failed if row_id is not None])


async def process_entries_by_quarter(entries: Sequence[TimesheetEntry], *,
                                     to_bot_row: Callable[[TimesheetEntry], Dict[str, Any]],
                                     run_bot: RunBot,
                                     email: str,
                                     password: str,
                                     progress_callback: Optional[ProgressCallback] = None,
                                     abort_signal: Optional[AbortSignal] = None,
                                     use_mock_website: bool = False,
                                     registry: Optional[QuarterRegistry] = None,
                                     config: Optional[AutomationConfig] = None) -> AggregateResult:
    """
    Submit entries grouped by quarter

    Groups are processed one after another. A group whose date has no quarter
    definition, whose login fails, or whose submitter raises is recorded as
    failed and the remaining groups still run. Cancellation stops before the
    next group; ids of groups that never ran appear in neither list.

    Args:
        entries: Entries to submit
        to_bot_row: Converts an entry into a label-keyed form row
        run_bot: Submitter, called as run_bot(rows, credentials, target, progress_callback, abort_signal)
        email: Login identity
        password: Login secret
        progress_callback: Receives overall (percent, message)
        abort_signal: Cooperative cancellation signal
        use_mock_website: Submit to the local mock website instead of Smartsheet
        registry: Quarter definitions (defaults to QUARTER_DEFINITIONS)
        config: Used for the mock website target
    """
    registry = registry or QuarterRegistry()
    credentials = Credentials(identity=email, secret=password)
    progress = ProgressChannel(progress_callback)
    aggregator = ResultAggregator()

    groups = group_entries_by_quarter(entries)
    logger.info(f"Processing {len(entries)} entries in {len(groups)} quarter group(s)")

    for position, (key, group) in enumerate(groups.items()):
        if abort_signal is not None and abort_signal.aborted:
            logger.info(f"Cancelled before {key}; skipping remaining quarters")
            aggregator.mark_cancelled(abort_signal.reason)
            break

        ids = [entry.id for entry in group]
        definition = registry.resolve(group[0].date) if key != INVALID_QUARTER else None
        if definition is None:
            logger.warning(f"No quarter definition for {key} ({len(group)} entries)")
            aggregator.add_routing_failure(key, ids)
            continue

        if use_mock_website:
            target = build_mock_form_target(config or AutomationConfig.from_env(), definition.id)
        else:
            target = create_form_target(definition.form_url, definition.form_id, definition.id)

        share = 100.0 / len(groups)
        quarter_progress = progress.scaled(position * share, (position + 1) * share)
        logger.info(f"Submitting {len(group)} entries for {definition.id}")

        try:
            rows = [to_bot_row(entry) for entry in group]
            outcome = await run_bot(rows, credentials, target, quarter_progress, abort_signal)
        except SubmissionCancelledError:
            aggregator.mark_cancelled(abort_signal.reason if abort_signal else None)
            break
        except Exception as e:
            logger.error(f"Submission for {definition.id} raised: {e}", exc_info=True)
            aggregator.add_quarter(QuarterResult(definition.id, ok=False,
                                                 failed_ids=[row_id for row_id in ids if row_id is not None]))
            continue

        submitted_ids, failed_ids = map_results_to_ids(outcome, ids)
        aggregator.add_quarter(QuarterResult(definition.id, outcome.ok, submitted_ids, failed_ids))
        if outcome.cancelled:
            aggregator.mark_cancelled(abort_signal.reason if abort_signal else None)
            break

    result = aggregator.build(total_processed=len(entries))
    logger.info(f"Quarter processing finished: {result.success_count} submitted, "
                f"{result.removed_count} removed, ok={result.ok}")
    return result
