"""
Compliance Engine - Agency Assessor Tests

Per-agency scoring rules, severity bands and registry services.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from compliance_engine.models.enums import Agency, BusinessType, ComplianceLevel
from compliance_engine.schemas.compliance import (
    BusinessProfile,
    FilingRecord,
    TaxCalculationInput,
    WithholdingPayment,
)
from compliance_engine.services.agencies import (
    AssessorRegistry,
    EnvironmentalAssessor,
    ImmigrationAssessor,
    InvestmentOfficeAssessor,
    RegistryAssessor,
    SocialInsuranceAssessor,
    TaxAuthorityAssessor,
    default_registry,
)
from compliance_engine.utils.error_handling import ConfigurationException, ErrorCode

from conftest import AS_OF, months_before, monthly_filings


def _corporation(registered: datetime, **overrides) -> BusinessProfile:
    fields = dict(
        business_id="biz-corp-002",
        name="Rupununi Traders Ltd.",
        business_type=BusinessType.CORPORATION,
        sector="retail",
        registration_date=registered,
        tax_id="TIN-1",
        nis_number="NIS-1",
        annual_revenue=Decimal("5000000"),
    )
    fields.update(overrides)
    return BusinessProfile(**fields)


class TestRegistryAssessor:
    """DCRA annual return severity bands."""

    def test_unregistered_business(self, settings, unregistered_business):
        """No registration date is a Critical registration gap."""
        result = RegistryAssessor(settings=settings).assess(unregistered_business, [], AS_OF)

        assert result.requirement_id == "DCRA_REGISTRATION"
        assert result.score == 0
        assert result.level == ComplianceLevel.CRITICAL
        assert result.notes == ["Business is not registered with DCRA"]

    def test_annual_return_up_to_date(self, settings, compliant_corporation):
        """A business inside its first year owes nothing yet."""
        result = RegistryAssessor(settings=settings).assess(compliant_corporation, [], AS_OF)

        assert result.score == 100
        assert result.level == ComplianceLevel.COMPLIANT
        assert result.due_date == datetime(2025, 2, 1)
        assert result.days_overdue == 0

    def test_one_month_overdue(self, settings):
        """Registered thirteen months ago and never filed an annual return."""
        result = RegistryAssessor(settings=settings).assess(_corporation(months_before(13)), [], AS_OF)

        assert result.days_overdue == 31
        assert result.score == 75
        assert result.level == ComplianceLevel.MINOR_ISSUES
        assert result.accrued_penalty == Decimal("3100")
        assert result.due_date == datetime(2025, 5, 20, 12)

    @pytest.mark.parametrize("months,days_overdue,score,level", [
        (16, 121, 50, ComplianceLevel.MAJOR_ISSUES),
        (19, 213, 20, ComplianceLevel.CRITICAL),
        (26, 427, 0, ComplianceLevel.CRITICAL),
    ])
    def test_severity_bands(self, settings, months, days_overdue, score, level):
        """Longer overdue periods fall into harsher bands."""
        result = RegistryAssessor(settings=settings).assess(_corporation(months_before(months)), [], AS_OF)

        assert result.days_overdue == days_overdue
        assert result.score == score
        assert result.level == level

    def test_penalty_capped_at_late_fee(self, settings):
        """The daily late fee stops at the entity type's cap."""
        result = RegistryAssessor(settings=settings).assess(_corporation(months_before(26)), [], AS_OF)

        assert result.accrued_penalty == Decimal("5000")

    def test_filed_annual_return_clears_overdue(self, settings):
        """A filed annual return clears the missed anniversary."""
        profile = _corporation(months_before(13))
        history = [FilingRecord(agency=Agency.DCRA, filing_type="Annual Return", filed_date=months_before(1, 5))]
        result = RegistryAssessor(settings=settings).assess(profile, history, AS_OF)

        assert result.score == 100
        assert result.last_filed_date == months_before(1, 5)

    def test_due_soon_note(self, settings):
        """An annual return due within the window adds a note."""
        profile = _corporation(datetime(2023, 7, 1))
        history = [FilingRecord(agency=Agency.DCRA, filing_type="Annual Return", filed_date=datetime(2023, 12, 1))]
        result = RegistryAssessor(settings=settings).assess(profile, history, AS_OF)

        assert result.notes == ["Annual Return due in 11 days"]


class TestBusinessNameValidation:
    """Registry naming rules."""

    def test_valid_corporate_name(self, settings):
        """A corporate name with a proper suffix passes."""
        validation = RegistryAssessor(settings=settings).validate_business_name(
            "Kaieteur Mining Ltd.", BusinessType.CORPORATION,
        )

        assert validation.is_valid
        assert validation.issues == []

    def test_missing_suffix_gets_suggestions(self, settings):
        """A missing suffix is reported with suggested names."""
        validation = RegistryAssessor(settings=settings).validate_business_name(
            "Kaieteur Mining", BusinessType.CORPORATION,
        )

        assert not validation.is_valid
        assert validation.suggestions == [
            'Consider: "Kaieteur Mining Inc."',
            'Consider: "Kaieteur Mining Corp."',
        ]

    def test_prohibited_word(self, settings):
        """Restricted words need special approval."""
        validation = RegistryAssessor(settings=settings).validate_business_name(
            "Royal Bakery", BusinessType.SOLE_PROPRIETORSHIP,
        )

        assert not validation.is_valid
        assert any('"royal"' in issue for issue in validation.issues)

    def test_too_short(self, settings):
        """Names under three characters are rejected."""
        validation = RegistryAssessor(settings=settings).validate_business_name(
            "AB", BusinessType.SOLE_PROPRIETORSHIP,
        )

        assert not validation.is_valid


class TestRegistryServices:
    """Forms, checklist and fee helpers."""

    def test_forms_include_common_and_type_specific(self, settings):
        """Forms list the common set plus the entity type's own."""
        forms = RegistryAssessor(settings=settings).get_forms(BusinessType.PARTNERSHIP)

        assert "Form 1: Annual Return" in forms
        assert "Form 9: Partnership Registration" in forms

    def test_checklist(self, settings):
        """The checklist includes the entity type's steps."""
        checklist = RegistryAssessor(settings=settings).get_checklist(BusinessType.SOLE_PROPRIETORSHIP)

        assert "Register business name" in checklist

    def test_compliance_costs(self, settings):
        """Costs come from the fee schedule in force."""
        costs = RegistryAssessor(settings=settings).calculate_compliance_costs(BusinessType.PARTNERSHIP, AS_OF)

        assert costs["registration_fee"] == Decimal("15000")
        assert costs["annual_return_fee"] == Decimal("10000")

    def test_name_reservation(self, settings):
        """Name reservation quotes its fee and validity period."""
        reservation = RegistryAssessor(settings=settings).name_reservation(BusinessType.CORPORATION, AS_OF)

        assert reservation == {"fee": Decimal("2000"), "validity_days": 60}


class TestTaxAuthorityAssessor:
    """GRA deductions."""

    def test_compliant(self, settings, compliant_corporation):
        """A registered corporation below the VAT threshold is compliant."""
        result = TaxAuthorityAssessor(settings=settings).assess(compliant_corporation, [], AS_OF)

        assert result.score == 100
        assert result.level == ComplianceLevel.COMPLIANT
        # First corporate income tax return falls due 31 March 2025
        assert result.due_date == datetime(2025, 3, 31)

    def test_deductions_accumulate(self, settings):
        """Overdue VAT return, unregistered for VAT and no TIN."""
        profile = _corporation(datetime(2024, 2, 1), tax_id=None, annual_revenue=Decimal("12000000"))
        result = TaxAuthorityAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 25
        assert result.level == ComplianceLevel.CRITICAL
        assert "1 overdue filing(s) with GRA" in result.notes
        assert "VAT Return overdue by 98 days" in result.notes
        assert "Business must register for VAT (revenue exceeds GYD 10,000,000)" in result.notes
        assert "Business must obtain TIN (Tax Identification Number)" in result.notes

    def test_overdue_only_is_minor(self, settings):
        """Overdue returns alone are Minor issues."""
        profile = _corporation(datetime(2024, 2, 1), vat_registered=True, annual_revenue=Decimal("12000000"))
        result = TaxAuthorityAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 80
        assert result.level == ComplianceLevel.MINOR_ISSUES
        # Four missed VAT returns at GYD 2,000 per day, capped at 200,000
        assert result.accrued_penalty == Decimal("200000")

    def test_score_never_negative(self, settings):
        """Deductions bottom out at zero."""
        profile = _corporation(
            datetime(2022, 1, 10), tax_id=None, annual_revenue=Decimal("12000000"), employee_count=3,
        )
        result = TaxAuthorityAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 0
        assert result.level == ComplianceLevel.CRITICAL

    def test_filed_returns_with_due_soon_note(self, settings, employer):
        """Monthly filings keep the score and leave a due-soon note."""
        history = monthly_filings(Agency.GRA, "Withholding Tax", datetime(2024, 1, 15), 5)
        result = TaxAuthorityAssessor(settings=settings).assess(employer, history, AS_OF)

        assert result.score == 100
        assert result.notes == ["Withholding Tax due in 25 days"]
        assert result.last_filed_date == datetime(2024, 6, 10)

    def test_calculate_taxes_for_partnership(self, settings, employer):
        """A partnership pays income tax, VAT and withholding, not corporate tax."""
        tax_input = TaxCalculationInput(
            annual_income=Decimal("2000000"),
            taxable_profit=Decimal("1000000"),
            taxable_supplies=Decimal("100000"),
            withholding_payments=[WithholdingPayment(amount=Decimal("100000"), income_type="dividends")],
        )
        result = TaxAuthorityAssessor(settings=settings).calculate_taxes(employer, tax_input, AS_OF)

        assert result.income_tax == Decimal("394400")
        assert result.corporate_tax == Decimal("0")
        assert result.vat == Decimal("14000")
        assert result.withholding_tax == Decimal("20000")
        assert result.total_tax == Decimal("428400")

    def test_calculate_corporate_tax(self, settings, compliant_corporation):
        """A small corporation uses the small business rate."""
        tax_input = TaxCalculationInput(taxable_profit=Decimal("1000000"))
        result = TaxAuthorityAssessor(settings=settings).calculate_taxes(compliant_corporation, tax_input, AS_OF)

        # Revenue of 5M is below the small business threshold
        assert result.corporate_tax == Decimal("100000")
        assert result.breakdown["corporate_tax"]["category"] == "small_business"


class TestSocialInsuranceAssessor:
    """NIS contribution compliance."""

    def test_employer_with_missed_contributions(self, settings, employer):
        """Five missed contribution months are Major issues."""
        result = SocialInsuranceAssessor(settings=settings).assess(employer, [], AS_OF)

        assert result.score == 75
        assert result.level == ComplianceLevel.MAJOR_ISSUES
        assert result.days_overdue == 127
        assert result.accrued_penalty == Decimal("25200.00")
        assert result.notes == ["1 overdue NIS contribution(s)"]

    def test_employer_without_nis_number(self, settings, employer):
        """An employer without an NIS number is Critical."""
        profile = employer.model_copy(update={"nis_number": None})
        history = monthly_filings(Agency.NIS, "Monthly Contributions", datetime(2024, 1, 15), 5)
        result = SocialInsuranceAssessor(settings=settings).assess(profile, history, AS_OF)

        assert result.score == 60
        assert result.level == ComplianceLevel.CRITICAL

    def test_severity_only_escalates(self, settings, employer):
        """Overdue contributions never soften a Critical registration gap."""
        profile = employer.model_copy(update={"nis_number": None})
        result = SocialInsuranceAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 35
        assert result.level == ComplianceLevel.CRITICAL

    def test_self_employed_without_nis(self, settings, sole_proprietor):
        """A self-employed earner above the minimum must register."""
        result = SocialInsuranceAssessor(settings=settings).assess(sole_proprietor, [], AS_OF)

        assert result.score == 70
        assert result.level == ComplianceLevel.MAJOR_ISSUES
        assert result.due_date == datetime(2024, 7, 15)
        assert "Self-employed individual must register with NIS" in result.notes
        assert "Quarterly Self-Employed due in 25 days" in result.notes

    def test_self_employed_below_minimum(self, settings, sole_proprietor):
        """Below the self-employed minimum no registration is needed."""
        profile = sole_proprietor.model_copy(update={"annual_revenue": Decimal("100000")})
        result = SocialInsuranceAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 100

    def test_no_staff_no_obligations(self, settings, compliant_corporation):
        """A business without staff has no contribution deadlines."""
        result = SocialInsuranceAssessor(settings=settings).assess(compliant_corporation, [], AS_OF)

        assert result.score == 100
        assert result.due_date is None

    def test_annual_budget(self, settings, employer):
        """The budget splits employee and employer contributions."""
        budget = SocialInsuranceAssessor(settings=settings).calculate_annual_budget(employer, AS_OF)

        assert budget.employee_contributions == Decimal("537600.96")
        assert budget.employer_contributions == Decimal("806399.36")
        assert budget.self_employed_contributions == Decimal("0")
        assert budget.total_annual == Decimal("1344000.32")

    def test_forms(self, settings):
        """NIS forms include the monthly contribution return."""
        assert "Form NIS-3: Monthly Contribution Return" in SocialInsuranceAssessor(settings=settings).get_forms()


class TestSimpleRuleAssessors:
    """Threshold-only agencies."""

    def test_high_impact_sector(self, settings, unregistered_business):
        """Mining needs a permit and impact assessment."""
        result = EnvironmentalAssessor(settings=settings).assess(unregistered_business, [], AS_OF)

        assert result.score == 50
        assert result.level == ComplianceLevel.MAJOR_ISSUES

    def test_medium_impact_sector_is_informational(self, settings, compliant_corporation):
        """Medium-impact sectors get a note and no deduction."""
        profile = compliant_corporation.model_copy(update={"sector": "Tourism"})
        result = EnvironmentalAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 100
        assert len(result.notes) == 1

    def test_investment_incentive_note(self, settings, compliant_corporation):
        """High revenue earns an incentive note."""
        profile = compliant_corporation.model_copy(update={"annual_revenue": Decimal("60000000")})
        result = InvestmentOfficeAssessor(settings=settings).assess(profile, [], AS_OF)

        assert result.score == 100
        assert result.notes == [
            "Revenue above GYD 50,000,000: business may qualify for investment incentives"
        ]

    def test_foreign_structure(self, settings, compliant_corporation):
        """Branches are flagged by investment and immigration."""
        profile = compliant_corporation.model_copy(update={"business_type": BusinessType.BRANCH})

        investment = InvestmentOfficeAssessor(settings=settings).assess(profile, [], AS_OF)
        immigration = ImmigrationAssessor(settings=settings).assess(profile, [], AS_OF)

        assert investment.score == immigration.score == 90
        assert immigration.level == ComplianceLevel.MINOR_ISSUES


class TestAssessorRegistry:
    """Agency to assessor lookup."""

    def test_default_registry_covers_every_agency(self, settings):
        """The default registry has one assessor per agency."""
        registry = default_registry(settings=settings)

        assert set(registry.agencies) == set(Agency)
        assert len(registry) == 6

    def test_unregistered_agency(self, settings):
        """Looking up a missing agency is a configuration error."""
        registry = AssessorRegistry([RegistryAssessor(settings=settings)])

        with pytest.raises(ConfigurationException) as exc_info:
            registry.get(Agency.GRA)

        assert exc_info.value.code == ErrorCode.AGENCY_NOT_REGISTERED

    def test_register_replaces(self, settings):
        """Registering an agency again replaces its assessor."""
        registry = AssessorRegistry([RegistryAssessor(settings=settings)])
        replacement = RegistryAssessor(settings=settings)
        registry.register(replacement)

        assert registry.get(Agency.DCRA) is replacement
        assert Agency.DCRA in registry
