"""
Compliance Engine - Batch Compliance Service

Runs one compliance job over many businesses. The batch is a fold: every
business gets its own BatchItemResult and a failure in one never stops
the others.

Job types:
- score_refresh: weighted compliance score per business
- deadline_check: upcoming (within the notification threshold) and overdue
  deadlines, as data for the notification collaborator
- compliance_report: full compliance report
- penalty_calculation: accrued penalty per overdue deadline and in total

Scheduling, retries and persistence of results belong to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from compliance_engine.config.settings import Settings, get_settings
from compliance_engine.models.enums import ComplianceJobType
from compliance_engine.schemas.compliance import (
    BatchItemResult,
    BatchResult,
    BusinessProfile,
    DeadlineCheck,
    FilingRecord,
    PenaltyLine,
    PenaltySummary,
)
from compliance_engine.services.compliance_orchestrator import ComplianceOrchestrator
from compliance_engine.utils.error_handling import UnsupportedJobTypeException, error_to_dict

logger = logging.getLogger(__name__)


@dataclass
class BatchItem:
    """One business and its filing history."""
    profile: BusinessProfile
    filing_history: List[FilingRecord] = field(default_factory=list)


class ComplianceBatchService:
    """Per-business fold over a batch of compliance jobs."""

    def __init__(
        self,
        orchestrator: Optional[ComplianceOrchestrator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or ComplianceOrchestrator(settings=self.settings)
        self._jobs: Dict[ComplianceJobType, Callable[[BatchItem, datetime], Awaitable[Any]]] = {
            ComplianceJobType.SCORE_REFRESH: self.refresh_score,
            ComplianceJobType.DEADLINE_CHECK: self.check_deadlines,
            ComplianceJobType.COMPLIANCE_REPORT: self.build_report,
            ComplianceJobType.PENALTY_CALCULATION: self.calculate_penalties,
        }

    # ===========================================
    # JOBS
    # ===========================================

    async def refresh_score(self, item: BatchItem, as_of: datetime):
        return await self.orchestrator.get_compliance_score(item.profile, item.filing_history, as_of)

    async def check_deadlines(self, item: BatchItem, as_of: datetime) -> DeadlineCheck:
        collected = await self.orchestrator.collect_deadlines(item.profile, item.filing_history, as_of)
        deadlines = collected.deadlines
        threshold = self.settings.deadline_notification_threshold_days
        return DeadlineCheck(
            business_id=item.profile.business_id,
            upcoming=[d for d in deadlines if not d.is_overdue and d.days_until_due <= threshold],
            overdue=[d for d in deadlines if d.is_overdue],
            agency_failures=collected.failures,
        )

    async def build_report(self, item: BatchItem, as_of: datetime):
        return await self.orchestrator.generate_compliance_report(item.profile, item.filing_history, as_of)

    async def calculate_penalties(self, item: BatchItem, as_of: datetime) -> PenaltySummary:
        deadlines = await self.orchestrator.get_upcoming_deadlines(item.profile, item.filing_history, as_of)
        penalties = [
            PenaltyLine(
                agency=d.agency,
                requirement_id=d.requirement_id,
                filing_type=d.filing_type,
                days_overdue=d.days_overdue,
                amount=d.penalty.current_accrued,
            )
            for d in deadlines
            if d.is_overdue
        ]
        return PenaltySummary(
            business_id=item.profile.business_id,
            penalties=penalties,
            total=sum((p.amount for p in penalties), Decimal("0")),
        )

    # ===========================================
    # BATCH
    # ===========================================

    async def _process_item(
        self,
        job: Callable[[BatchItem, datetime], Awaitable[Any]],
        item: BatchItem,
        as_of: datetime,
        semaphore: asyncio.Semaphore,
    ) -> BatchItemResult:
        business_id = item.profile.business_id
        async with semaphore:
            try:
                value = await job(item, as_of)
                return BatchItemResult(business_id=business_id, success=True, value=value)
            except Exception as e:
                logger.error(f"Compliance job failed for business {business_id}: {e}")
                return BatchItemResult(business_id=business_id, success=False, error=error_to_dict(e))

    async def process_batch(
        self,
        items: Sequence[BatchItem],
        job_type: Union[ComplianceJobType, str],
        as_of: datetime,
    ) -> BatchResult:
        """
        Run a job over every business.

        Raises:
            UnsupportedJobTypeException: before any business is processed
        """
        try:
            job_type = ComplianceJobType(job_type)
        except ValueError:
            raise UnsupportedJobTypeException(job_type)
        job = self._jobs[job_type]

        semaphore = asyncio.Semaphore(max(1, self.settings.batch_concurrency))
        results = await asyncio.gather(*[
            self._process_item(job, item, as_of, semaphore) for item in items
        ])

        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        logger.info(f"Compliance job {job_type.value} complete: {succeeded} succeeded, {failed} failed")

        return BatchResult(
            job_type=job_type,
            as_of=as_of,
            processed=len(results),
            succeeded=succeeded,
            failed=failed,
            items=list(results),
        )
