"""
Compliance Engine - Compliance Orchestrator

Runs every registered agency assessor for a business and combines the
results into a weighted score, a merged deadline list, a remediation plan
and a setup validation report.

Agency weights (sum to 1.0):
- GRA: 0.35
- NIS: 0.25
- DCRA: 0.20
- GO_INVEST: 0.08
- EPA: 0.07
- IMMIGRATION: 0.05

An assessor that raises never fails the whole call: it is reported as an
AgencyFailure, left out of the score, and the remaining weights are
renormalised.

Instants are compared as naive UTC; an aware as_of is converted once on
entry to each public operation.
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Sequence, Union

from compliance_engine.config.rate_tables import DEFAULT_RATE_TABLES, RateTableRegistry
from compliance_engine.config.settings import Settings, get_settings
from compliance_engine.models.enums import Agency, ComplianceLevel
from compliance_engine.schemas.compliance import (
    ActionPlan,
    AgencyFailure,
    AssessmentRun,
    BusinessProfile,
    ComplianceReport,
    ComplianceResult,
    ComplianceScore,
    DeadlineRun,
    FilingDeadline,
    FilingRecord,
    SetupValidation,
    TaxCalculationInput,
    TaxObligations,
    as_naive_utc,
)
from compliance_engine.services.agencies import AgencyAssessor, AssessorRegistry, default_registry
from compliance_engine.services.tax_calculators import VATCalculator
from compliance_engine.utils.error_handling import (
    ConfigurationException,
    ErrorCode,
    error_code_of,
)

logger = logging.getLogger(__name__)

DEFAULT_AGENCY_WEIGHTS: Dict[Agency, Decimal] = {
    Agency.GRA: Decimal("0.35"),          # tax compliance
    Agency.NIS: Decimal("0.25"),          # employment compliance
    Agency.DCRA: Decimal("0.20"),
    Agency.GO_INVEST: Decimal("0.08"),
    Agency.EPA: Decimal("0.07"),
    Agency.IMMIGRATION: Decimal("0.05"),
}

WEIGHT_TOLERANCE = Decimal("1e-9")
MAJOR_ISSUES_BELOW = Decimal("70")
MINOR_ISSUES_BELOW = Decimal("85")


def round_score(value: Decimal) -> int:
    """Round half up to the nearest whole point."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ComplianceOrchestrator:
    """
    Multi-agency compliance orchestrator.

    All operations are coroutines taking an explicit as_of instant; nothing
    reads the system clock.
    """

    def __init__(
        self,
        registry: Optional[AssessorRegistry] = None,
        weights: Optional[Mapping[Agency, Union[Decimal, float, str]]] = None,
        settings: Optional[Settings] = None,
        rate_tables: Optional[RateTableRegistry] = None,
    ):
        self.settings = settings or get_settings()
        self.rate_tables = rate_tables or DEFAULT_RATE_TABLES
        self.registry = registry or default_registry(self.rate_tables, self.settings)
        source = DEFAULT_AGENCY_WEIGHTS if weights is None else weights
        self.weights = {Agency(agency): Decimal(str(weight)) for agency, weight in source.items()}
        self._validate_weights()

    def _validate_weights(self) -> None:
        registered = set(self.registry.agencies)
        missing = registered - set(self.weights)
        if missing:
            raise ConfigurationException(
                f"No weight configured for agencies: {sorted(a.value for a in missing)}",
                code=ErrorCode.INVALID_WEIGHTS,
                details={"missing": sorted(a.value for a in missing)},
            )
        unregistered = set(self.weights) - registered
        if unregistered:
            raise ConfigurationException(
                f"Weights configured for unregistered agencies: {sorted(a.value for a in unregistered)}",
                code=ErrorCode.INVALID_WEIGHTS,
                details={"unregistered": sorted(a.value for a in unregistered)},
            )
        if any(weight < 0 for weight in self.weights.values()):
            raise ConfigurationException("Agency weights must not be negative", code=ErrorCode.INVALID_WEIGHTS)

        total = sum(self.weights.values(), Decimal("0"))
        if abs(total - 1) > WEIGHT_TOLERANCE:
            raise ConfigurationException(
                f"Agency weights must sum to 1.0, got {total}",
                code=ErrorCode.INVALID_WEIGHTS,
                details={"total": str(total)},
            )

    # ===========================================
    # ASSESSOR FAN-OUT
    # ===========================================

    async def _assess_one(
        self,
        assessor: AgencyAssessor,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> Union[ComplianceResult, AgencyFailure]:
        try:
            return assessor.assess(profile, filing_history, as_of)
        except Exception as e:
            logger.error(
                f"{assessor.agency.value} assessment failed for business {profile.business_id}: {e}",
                exc_info=True,
            )
            return AgencyFailure(agency=assessor.agency, error_code=error_code_of(e).value, message=str(e))

    async def _deadlines_for(
        self,
        assessor: AgencyAssessor,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> Union[List[FilingDeadline], AgencyFailure]:
        try:
            return assessor.compute_deadlines(profile, filing_history, as_of)
        except Exception as e:
            logger.error(
                f"{assessor.agency.value} deadline computation failed for business {profile.business_id}: {e}",
                exc_info=True,
            )
            return AgencyFailure(agency=assessor.agency, error_code=error_code_of(e).value, message=str(e))

    async def assess_all(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> AssessmentRun:
        """Run every assessor concurrently, isolating failures."""
        as_of = as_naive_utc(as_of)
        outcomes = await asyncio.gather(*[
            self._assess_one(assessor, profile, filing_history, as_of)
            for assessor in self.registry
        ])
        return AssessmentRun(
            results=[o for o in outcomes if isinstance(o, ComplianceResult)],
            failures=[o for o in outcomes if isinstance(o, AgencyFailure)],
        )

    async def collect_deadlines(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> DeadlineRun:
        """Every agency's deadlines, ascending by due date, with the agencies that failed."""
        as_of = as_naive_utc(as_of)
        outcomes = await asyncio.gather(*[
            self._deadlines_for(assessor, profile, filing_history, as_of)
            for assessor in self.registry
        ])
        deadlines: List[FilingDeadline] = []
        failures: List[AgencyFailure] = []
        for outcome in outcomes:
            if isinstance(outcome, AgencyFailure):
                failures.append(outcome)
            else:
                deadlines.extend(outcome)
        deadlines.sort(key=lambda d: (d.due_date, d.agency.value, d.filing_type))
        return DeadlineRun(deadlines=deadlines, failures=failures)

    # ===========================================
    # PUBLIC OPERATIONS
    # ===========================================

    async def get_all_compliance_results(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> List[ComplianceResult]:
        """Raw per-agency results, independent of weighting."""
        run = await self.assess_all(profile, filing_history, as_of)
        return run.results

    async def get_compliance_score(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceScore:
        run = await self.assess_all(profile, filing_history, as_of)
        return self.score_from_run(run, as_of)

    def score_from_run(self, run: AssessmentRun, as_of: datetime) -> ComplianceScore:
        """
        Weighted overall score.

        Any Critical result forces Critical; otherwise below 70 is Major
        issues, below 85 Minor issues. Failed agencies are excluded and the
        remaining weights renormalised. With every assessor failed the score
        is 0 and Critical.
        """
        as_of = as_naive_utc(as_of)
        failed = [failure.agency for failure in run.failures]
        by_agency = {result.agency: result.score for result in run.results}
        critical_count = sum(1 for r in run.results if r.level == ComplianceLevel.CRITICAL)

        total_weight = sum((self.weights[r.agency] for r in run.results), Decimal("0"))
        if total_weight == 0:
            return ComplianceScore(
                overall=0,
                by_agency=by_agency,
                level=ComplianceLevel.CRITICAL,
                critical_issues_count=critical_count,
                computed_at=as_of,
                failed_agencies=failed,
            )

        weighted = sum(
            (Decimal(r.score) * self.weights[r.agency] for r in run.results),
            Decimal("0"),
        )
        if failed:
            weighted = weighted / total_weight

        if critical_count:
            level = ComplianceLevel.CRITICAL
        elif weighted < MAJOR_ISSUES_BELOW:
            level = ComplianceLevel.MAJOR_ISSUES
        elif weighted < MINOR_ISSUES_BELOW:
            level = ComplianceLevel.MINOR_ISSUES
        else:
            level = ComplianceLevel.COMPLIANT

        return ComplianceScore(
            overall=min(100, max(0, round_score(weighted))),
            by_agency=by_agency,
            level=level,
            critical_issues_count=critical_count,
            computed_at=as_of,
            failed_agencies=failed,
        )

    async def get_upcoming_deadlines(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> List[FilingDeadline]:
        """
        Deadlines from every agency, ascending by due date. Agencies whose
        deadlines could not be computed are logged; use collect_deadlines()
        to receive them.
        """
        collected = await self.collect_deadlines(profile, filing_history, as_of)
        if collected.failures:
            logger.warning(
                f"Deadlines for {profile.business_id} omit failed agencies: "
                f"{', '.join(f.agency.value for f in collected.failures)}"
            )
        return collected.deadlines

    async def get_compliance_action_plan(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ActionPlan:
        run, collected = await asyncio.gather(
            self.assess_all(profile, filing_history, as_of),
            self.collect_deadlines(profile, filing_history, as_of),
        )
        return self.plan_from(run, collected.deadlines, collected.failures)

    def plan_from(
        self,
        run: AssessmentRun,
        deadlines: Sequence[FilingDeadline],
        deadline_failures: Sequence[AgencyFailure] = (),
    ) -> ActionPlan:
        """
        Critical-level notes become critical actions and Major-level notes
        recommendations; every deadline due within the action window adds a
        recommendation. Failed agencies are carried on the plan.
        """
        critical_actions: List[str] = []
        recommendations: List[str] = []
        estimated_costs = Decimal("0")

        for result in run.results:
            if result.level == ComplianceLevel.CRITICAL:
                critical_actions.extend(f"{result.agency.value}: {note}" for note in result.notes)
            elif result.level == ComplianceLevel.MAJOR_ISSUES:
                recommendations.extend(f"{result.agency.value}: {note}" for note in result.notes)
            estimated_costs += result.accrued_penalty

        for deadline in deadlines:
            if deadline.days_until_due <= self.settings.action_deadline_window_days:
                recommendations.append(
                    f"Upcoming: {deadline.description} due {deadline.due_date:%Y-%m-%d}"
                )

        return ActionPlan(
            critical_actions=critical_actions,
            upcoming_deadlines=[
                d for d in deadlines
                if d.days_until_due <= self.settings.upcoming_deadline_window_days
            ],
            recommendations=recommendations,
            estimated_costs=estimated_costs,
            agency_failures=merge_failures(run.failures, deadline_failures),
        )

    async def validate_business_setup(
        self,
        profile: BusinessProfile,
        as_of: Optional[datetime] = None,
    ) -> SetupValidation:
        """
        Registrations the business is missing, independent of scoring.

        The VAT threshold comes from the rate table in force on as_of, or
        the most recently published table when no instant is given.
        """
        if as_of is None:
            tables = self.rate_tables.tables[-1]
        else:
            tables = self.rate_tables.for_date(as_naive_utc(as_of))
        missing_requirements = []
        next_steps = []

        if profile.registration_date is None:
            missing_requirements.append("Business registration with DCRA")
            next_steps.append("Register business with Deeds & Commercial Registry Authority")

        if not profile.tax_id:
            missing_requirements.append("Tax Identification Number (TIN)")
            next_steps.append("Apply for TIN with Guyana Revenue Authority")

        if profile.has_employees and not profile.nis_number:
            missing_requirements.append("National Insurance Scheme registration")
            next_steps.append("Register with NIS for employee contributions")

        vat_required = VATCalculator(tables).is_registration_required(profile.annual_revenue)
        if vat_required and not profile.vat_registered:
            missing_requirements.append(
                f"VAT registration (revenue exceeds GYD {tables.vat_registration_threshold:,.0f})"
            )
            next_steps.append("Register for VAT with Guyana Revenue Authority")

        return SetupValidation(
            is_valid=not missing_requirements,
            missing_requirements=missing_requirements,
            next_steps=next_steps,
        )

    async def generate_compliance_report(
        self,
        profile: BusinessProfile,
        filing_history: Sequence[FilingRecord],
        as_of: datetime,
    ) -> ComplianceReport:
        """
        Full compliance report. Assessments, deadlines and validation run
        concurrently; score and action plan are derived from the same run
        so every section reflects one snapshot.
        """
        as_of = as_naive_utc(as_of)
        run, collected, validation = await asyncio.gather(
            self.assess_all(profile, filing_history, as_of),
            self.collect_deadlines(profile, filing_history, as_of),
            self.validate_business_setup(profile, as_of),
        )

        failures = merge_failures(run.failures, collected.failures)

        logger.info(
            f"Compliance report for {profile.business_id}: "
            f"{len(run.results)} agencies assessed, {len(failures)} failed"
        )

        return ComplianceReport(
            business=profile,
            compliance_score=self.score_from_run(run, as_of),
            agency_results=run.results,
            agency_failures=failures,
            upcoming_deadlines=collected.deadlines,
            action_plan=self.plan_from(run, collected.deadlines, collected.failures),
            validation=validation,
            generated_at=as_of,
        )

    async def calculate_tax_obligations(
        self,
        profile: BusinessProfile,
        tax_input: TaxCalculationInput,
        as_of: datetime,
    ) -> TaxObligations:
        """Revenue authority taxes plus the annual social insurance budget."""
        as_of = as_naive_utc(as_of)
        taxes = self.registry.get(Agency.GRA).calculate_taxes(profile, tax_input, as_of)
        social_insurance = self.registry.get(Agency.NIS).calculate_annual_budget(profile, as_of)
        return TaxObligations(
            business_id=profile.business_id,
            taxes=taxes,
            social_insurance=social_insurance,
            total_annual_cost=taxes.total_tax + social_insurance.total_annual,
        )


def merge_failures(
    assessment_failures: Sequence[AgencyFailure],
    deadline_failures: Sequence[AgencyFailure],
) -> List[AgencyFailure]:
    """One failure per agency; assessment failures take precedence."""
    failures = list(assessment_failures)
    reported = {failure.agency for failure in failures}
    failures.extend(f for f in deadline_failures if f.agency not in reported)
    return failures
