"""
Compliance Engine - DCRA (Deeds & Commercial Registry Authority) Assessor

Business registration and corporate compliance:
- Annual return every 12 months from registration
- GYD 100 per day late, capped at the entity type's late fee
- Registration, name reservation and change fees
- Forms, onboarding checklist and business name rules

Severity bands by days the annual return is overdue:
- more than 365: score 0, Critical (business may be struck off)
- more than 180: score 20, Critical
- more than 90:  score 50, Major issues
- more than 0:   score 75, Minor issues
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from compliance_engine.config.rate_tables import RateTables
from compliance_engine.models.enums import Agency, BusinessType, ComplianceLevel, FeeType
from compliance_engine.schemas.compliance import (
    BusinessProfile,
    ComplianceResult,
    FilingRecord,
    NameValidation,
)
from compliance_engine.services.agencies.base import AgencyAssessor
from compliance_engine.services.compliance_penalty_service import FlatRatePenaltyRule
from compliance_engine.services.deadline_service import DeadlineRule, registration_anniversary
from compliance_engine.services.tax_calculators.fee_schedule_service import FeeScheduleService

logger = logging.getLogger(__name__)

ANNUAL_RETURN = "Annual Return"
NAME_RESERVATION_VALIDITY_DAYS = 60

# (days overdue strictly above, score, level, note)
OVERDUE_BANDS = [
    (365, 0, ComplianceLevel.CRITICAL, "Annual return is more than 1 year overdue - business may be struck off"),
    (180, 20, ComplianceLevel.CRITICAL, "Annual return is more than 6 months overdue"),
    (90, 50, ComplianceLevel.MAJOR_ISSUES, "Annual return is more than 3 months overdue"),
    (0, 75, ComplianceLevel.MINOR_ISSUES, "Annual return is overdue"),
]

COMMON_FORMS = [
    "Form 1: Annual Return",
    "Form 2: Change of Registered Office",
    "Form 3: Change of Directors/Partners",
    "Form 4: Name Reservation Application",
]

FORMS_BY_TYPE = {
    BusinessType.CORPORATION: [
        "Form 5: Articles of Incorporation",
        "Form 6: Share Capital Changes",
        "Form 7: Director Appointments",
        "Form 8: Allotment of Shares",
    ],
    BusinessType.PARTNERSHIP: [
        "Form 9: Partnership Registration",
        "Form 10: Partnership Agreement Filing",
        "Form 11: Partner Changes",
    ],
    BusinessType.SOLE_PROPRIETORSHIP: [
        "Form 12: Business Name Registration",
        "Form 13: Proprietor Details",
    ],
    BusinessType.BRANCH: [
        "Form 14: Branch Registration",
        "Form 15: Power of Attorney Filing",
        "Form 16: Parent Company Details",
    ],
}

COMMON_CHECKLIST = [
    "Complete business name search and reservation",
    "Prepare registration documents",
    "Submit registration application with fees",
    "Obtain certificate of incorporation/registration",
    "Set up registered office in Guyana",
    "Maintain statutory records",
]

CHECKLIST_BY_TYPE = {
    BusinessType.CORPORATION: [
        "Draft Articles of Incorporation",
        "Appoint minimum 3 directors (2 must be Guyanese residents)",
        "Define share capital structure",
        "Conduct first board meeting",
        "Issue share certificates",
    ],
    BusinessType.PARTNERSHIP: [
        "Draft partnership agreement",
        "Register all partners",
        "Define profit sharing arrangements",
        "Establish partnership bank account",
    ],
    BusinessType.SOLE_PROPRIETORSHIP: [
        "Register business name",
        "Provide proprietor identification",
        "Establish business address",
    ],
    BusinessType.BRANCH: [
        "File certified copy of parent company incorporation",
        "Provide power of attorney to local agent",
        "Submit parent company financial statements",
        "Appoint local representative",
    ],
}

PROHIBITED_NAME_WORDS = ["bank", "insurance", "trust", "royal", "government", "ministry"]

REQUIRED_NAME_SUFFIXES = {
    BusinessType.CORPORATION: ["Inc.", "Corp.", "Limited", "Ltd."],
    BusinessType.PARTNERSHIP: ["Partnership", "Partners", "& Co."],
}

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 100


class RegistryAssessor(AgencyAssessor):
    """DCRA annual return compliance."""

    agency = Agency.DCRA

    def deadline_rules(self, profile: BusinessProfile, tables: RateTables) -> List[DeadlineRule]:
        terms = tables.penalty_for("DCRA_ANNUAL_RETURN")
        late_fee = FeeScheduleService(tables).annual_return_late_fee(profile.business_type)
        return [
            DeadlineRule(
                requirement_id="DCRA_ANNUAL_RETURN",
                agency=self.agency,
                filing_type=ANNUAL_RETURN,
                description=f"Annual return filing for {profile.business_type.value.lower().replace('_', ' ')}",
                interval_months=tables.annual_return_due_months,
                anchor=registration_anniversary,
                penalty=FlatRatePenaltyRule(daily_rate=terms.daily_rate, maximum=late_fee),
            )
        ]

    def assess(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceResult:
        if profile.registration_date is None:
            return ComplianceResult(
                requirement_id="DCRA_REGISTRATION",
                agency=self.agency,
                level=ComplianceLevel.CRITICAL,
                score=0,
                notes=["Business is not registered with DCRA"],
            )

        deadlines = self.compute_deadlines(profile, filing_history, as_of)
        overdue = [d for d in deadlines if d.is_overdue]
        days_overdue = max((d.days_overdue for d in overdue), default=0)

        score = 100
        level = ComplianceLevel.COMPLIANT
        notes: List[str] = []

        if overdue:
            for threshold, band_score, band_level, note in OVERDUE_BANDS:
                if days_overdue > threshold:
                    score, level = band_score, band_level
                    notes.append(note)
                    break
            logger.info(
                f"Annual return for business {profile.business_id} overdue by {days_overdue} days"
            )

        notes.extend(self.due_soon_notes(deadlines))

        return ComplianceResult(
            requirement_id="DCRA_OVERALL",
            agency=self.agency,
            level=level,
            score=score,
            due_date=deadlines[0].due_date if deadlines else None,
            last_filed_date=self.last_filed_date(filing_history, as_of),
            days_overdue=days_overdue,
            accrued_penalty=sum((d.penalty.current_accrued for d in overdue), Decimal("0")),
            notes=notes,
        )

    # ===========================================
    # REGISTRY SERVICES
    # ===========================================

    def get_forms(self, business_type: BusinessType) -> List[str]:
        return COMMON_FORMS + FORMS_BY_TYPE.get(business_type, [])

    def get_checklist(self, business_type: BusinessType) -> List[str]:
        """Onboarding checklist for a new business of this type."""
        return COMMON_CHECKLIST + CHECKLIST_BY_TYPE.get(business_type, [])

    def validate_business_name(self, proposed_name: str, business_type: BusinessType) -> NameValidation:
        """
        Check a proposed name against registry rules: length, words that
        need special approval, and the suffix the entity type must carry.
        """
        issues = []
        suggestions = []
        name = proposed_name.strip()

        if len(name) < MIN_NAME_LENGTH:
            issues.append(f"Business name must be at least {MIN_NAME_LENGTH} characters long")
        if len(name) > MAX_NAME_LENGTH:
            issues.append(f"Business name must be less than {MAX_NAME_LENGTH} characters")

        words = name.lower().split()
        for word in PROHIBITED_NAME_WORDS:
            if word in words:
                issues.append(f'Name cannot contain the word "{word}" without special approval')

        suffixes = REQUIRED_NAME_SUFFIXES.get(business_type)
        if suffixes and not any(suffix.lower() in name.lower() for suffix in suffixes):
            issues.append(f"{business_type.value} must include one of: {', '.join(suffixes)}")
            suggestions.extend(f'Consider: "{name} {suffix}"' for suffix in suffixes[:2])

        return NameValidation(is_valid=not issues, issues=issues, suggestions=suggestions)

    def calculate_compliance_costs(self, business_type: BusinessType, as_of: datetime) -> Dict[str, Any]:
        """Registration fee plus projected annual return costs."""
        return FeeScheduleService(self.tables_for(as_of)).calculate_compliance_costs(business_type)

    def name_reservation(self, business_type: BusinessType, as_of: datetime) -> Dict[str, Any]:
        return {
            "fee": FeeScheduleService(self.tables_for(as_of)).lookup(FeeType.NAME_RESERVATION, business_type),
            "validity_days": NAME_RESERVATION_VALIDITY_DAYS,
        }
