"""
Compliance Engine - Agency Assessor Contract

Every agency is assessed by one AgencyAssessor. The orchestrator only
talks to assessors through this contract and an AssessorRegistry, so a new
agency is added by registering a new assessor.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

from compliance_engine.config.rate_tables import DEFAULT_RATE_TABLES, RateTableRegistry, RateTables
from compliance_engine.config.settings import Settings, get_settings
from compliance_engine.models.enums import Agency
from compliance_engine.schemas.compliance import (
    BusinessProfile,
    ComplianceResult,
    FilingDeadline,
    FilingRecord,
    as_naive_utc,
)
from compliance_engine.services.deadline_service import DeadlineRule, DeadlineService
from compliance_engine.utils.error_handling import ConfigurationException, ErrorCode

logger = logging.getLogger(__name__)


class AgencyAssessor(ABC):
    """
    Assesses one agency's compliance state for a business.

    Subclasses set `agency`, implement assess(), and override
    deadline_rules() when the agency imposes recurring filings.
    """

    agency: Agency

    def __init__(
        self,
        rate_tables: Optional[RateTableRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.rate_tables = rate_tables or DEFAULT_RATE_TABLES
        self.settings = settings or get_settings()
        self.deadline_service = DeadlineService()

    def tables_for(self, as_of: datetime) -> RateTables:
        return self.rate_tables.for_date(as_of)

    @abstractmethod
    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        """Assess the business as of the given instant."""

    def deadline_rules(self, profile: BusinessProfile, tables: RateTables) -> List[DeadlineRule]:
        """Recurring obligations this agency imposes on the business."""
        return []

    def compute_deadlines(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> List[FilingDeadline]:
        rules = self.deadline_rules(profile, self.tables_for(as_of))
        if not rules:
            return []
        return self.deadline_service.compute_deadlines(rules, profile, filing_history, as_of)

    # ===========================================
    # HELPERS
    # ===========================================

    def last_filed_date(
        self,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> Optional[datetime]:
        """Most recent filing with this agency on or before as_of."""
        as_of = as_naive_utc(as_of)
        return max(
            (
                record.filed_date
                for record in filing_history
                if record.agency == self.agency and record.filed_date <= as_of
            ),
            default=None,
        )

    def due_soon_notes(self, deadlines: Sequence[FilingDeadline]) -> List[str]:
        window = self.settings.due_soon_note_days
        return [
            f"{deadline.filing_type} due in {deadline.days_until_due} days"
            for deadline in deadlines
            if not deadline.is_overdue and deadline.days_until_due <= window
        ]


class AssessorRegistry:
    """Maps each agency to the assessor responsible for it."""

    def __init__(self, assessors: Optional[Sequence[AgencyAssessor]] = None):
        self._assessors: Dict[Agency, AgencyAssessor] = {}
        for assessor in assessors or []:
            self.register(assessor)

    def register(self, assessor: AgencyAssessor) -> None:
        if assessor.agency in self._assessors:
            logger.info(f"Replacing assessor for {assessor.agency.value}")
        self._assessors[assessor.agency] = assessor

    def get(self, agency: Agency) -> AgencyAssessor:
        try:
            return self._assessors[agency]
        except KeyError:
            raise ConfigurationException(
                f"No assessor registered for agency {agency}",
                code=ErrorCode.AGENCY_NOT_REGISTERED,
                details={"agency": str(agency)},
            )

    @property
    def agencies(self) -> List[Agency]:
        return list(self._assessors)

    def __iter__(self) -> Iterator[AgencyAssessor]:
        return iter(list(self._assessors.values()))

    def __len__(self) -> int:
        return len(self._assessors)

    def __contains__(self, agency: object) -> bool:
        return agency in self._assessors
