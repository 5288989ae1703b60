"""
Expat RRS - Planning Catalogue
==============================
Investment ideas, German pension plans and retirement tax benefits,
filtered to the ones that fit a profile.

Each entry declares who it applies to; the catalogue never ranks or
scores, it only filters.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Union

from german_tax import RiskLevel, EmploymentType
from models import (
    UserFinancialProfile,
    InvestmentIdea,
    PensionPlan,
    PensionProviderType,
    TaxBenefit,
)

CatalogItem = Union[InvestmentIdea, PensionPlan, TaxBenefit]

SELF_EMPLOYED_TYPES = frozenset({EmploymentType.SELF_EMPLOYED, EmploymentType.FREELANCER})
EMPLOYEE_TYPES = frozenset({EmploymentType.EMPLOYED})


@dataclass
class CatalogEntry:
    """A catalogue item plus the profiles it applies to. None means everyone."""

    item: CatalogItem
    risk_levels: Optional[FrozenSet[RiskLevel]] = None
    employment_types: Optional[FrozenSet[EmploymentType]] = None
    requires_property: bool = False

    def applies_to(self, profile: UserFinancialProfile) -> bool:
        if self.risk_levels is not None and profile.risk_tolerance not in self.risk_levels:
            return False
        if self.employment_types is not None and profile.employment_type not in self.employment_types:
            return False
        if self.requires_property and not profile.has_property_investments:
            return False
        return True


# =============================================================================
# INVESTMENT IDEAS
# =============================================================================

INVESTMENT_IDEAS: List[CatalogEntry] = [
    CatalogEntry(InvestmentIdea(
        id="global_etf_portfolio",
        name="Globally Diversified ETF Portfolio",
        description="A mix of low-cost ETFs covering global stock and bond markets for long-term growth.",
        risk_level=RiskLevel.MEDIUM,
        expected_return=6,
        minimum_investment=1000,
        tax_advantages="Can be held in tax-advantaged accounts",
        suitable_for=["All investors", "Long-term goals"],
    )),
    CatalogEntry(InvestmentIdea(
        id="bundesanleihen",
        name="German Government Bonds (Bundesanleihen)",
        description="Safe government bonds with stable but lower returns, ideal for conservative investors.",
        risk_level=RiskLevel.LOW,
        expected_return=2.5,
        minimum_investment=100,
        tax_advantages="Interest may be partially tax-exempt",
        suitable_for=["Conservative investors", "Near-retirement"],
    ), risk_levels=frozenset({RiskLevel.LOW})),
    CatalogEntry(InvestmentIdea(
        id="defensive_dividend_stocks",
        name="Defensive Dividend Stocks",
        description="Blue-chip companies with stable dividends and lower volatility.",
        risk_level=RiskLevel.LOW,
        expected_return=4,
        minimum_investment=1000,
        tax_advantages="Saver's allowance (Sparerpauschbetrag) of €1,000 per year",
        suitable_for=["Income-focused investors", "Lower risk tolerance"],
    ), risk_levels=frozenset({RiskLevel.LOW})),
    CatalogEntry(InvestmentIdea(
        id="mischfonds",
        name="Balanced Fund (Mischfonds)",
        description="A balanced mix of stocks and bonds for moderate growth with reduced volatility.",
        risk_level=RiskLevel.MEDIUM,
        expected_return=5.5,
        minimum_investment=1000,
        tax_advantages="Can be part of tax-advantaged retirement accounts",
        suitable_for=["Balanced investors", "Medium-term goals"],
    ), risk_levels=frozenset({RiskLevel.MEDIUM})),
    CatalogEntry(InvestmentIdea(
        id="reits",
        name="Real Estate Investment Trusts (REITs)",
        description="Investments in income-producing real estate without direct property ownership.",
        risk_level=RiskLevel.MEDIUM,
        expected_return=6,
        minimum_investment=1000,
        tax_advantages="Potential for tax-efficient income",
        suitable_for=["Income investors", "Diversification seekers"],
    ), risk_levels=frozenset({RiskLevel.MEDIUM})),
    CatalogEntry(InvestmentIdea(
        id="growth_etfs",
        name="Growth Stock ETFs",
        description="Companies with above-average growth potential. Higher volatility, higher expected return.",
        risk_level=RiskLevel.HIGH,
        expected_return=8,
        minimum_investment=1000,
        tax_advantages="Partial exemption (Teilfreistellung) of 30% for equity funds",
        suitable_for=["Growth-oriented investors", "Longer time horizons"],
    ), risk_levels=frozenset({RiskLevel.HIGH})),
    CatalogEntry(InvestmentIdea(
        id="emerging_markets",
        name="Emerging Markets Funds",
        description="Investments in developing economies with higher growth potential and higher risk.",
        risk_level=RiskLevel.HIGH,
        expected_return=9,
        minimum_investment=1000,
        tax_advantages="Potential for tax-efficient growth",
        suitable_for=["Risk-tolerant investors", "Long-term investors"],
    ), risk_levels=frozenset({RiskLevel.HIGH})),
    CatalogEntry(InvestmentIdea(
        id="property_improvement",
        name="Property Renovation & Improvement",
        description="Improve existing property to increase its value and potential rental income.",
        risk_level=RiskLevel.MEDIUM,
        expected_return=7,
        minimum_investment=5000,
        tax_advantages="Renovation costs on rental property may be deductible",
        suitable_for=["Existing property owners"],
    ), requires_property=True),
]


# =============================================================================
# PENSION PLANS
# =============================================================================

PENSION_PLANS: List[CatalogEntry] = [
    CatalogEntry(PensionPlan(
        id="state_pension",
        name="German State Pension (Gesetzliche Rentenversicherung)",
        description="The mandatory state pension system for employees in Germany.",
        provider_type=PensionProviderType.GOVERNMENT,
        eligibility=["Employees with 5+ years of contributions", "Voluntary for self-employed"],
        benefits=["Guaranteed lifetime income", "Disability coverage", "Survivor benefits"],
        tax_treatment="Contributions largely tax-deductible, benefits partially taxable",
        suitable_for=["All employees", "Self-employed (voluntary)"],
    )),
    CatalogEntry(PensionPlan(
        id="riester",
        name="Riester Pension",
        description="Government-subsidised private pension plan with tax advantages.",
        provider_type=PensionProviderType.PRIVATE,
        eligibility=["Employees subject to social security", "Civil servants"],
        benefits=["Government subsidies", "Tax advantages", "Guaranteed contributions"],
        tax_treatment="Contributions deductible up to €2,100/year, benefits taxable",
        suitable_for=["Lower to middle income earners", "Families with children"],
    )),
    CatalogEntry(PensionPlan(
        id="ruerup",
        name="Rürup Pension (Basis-Rente)",
        description="Private pension plan designed for self-employed individuals and high earners.",
        provider_type=PensionProviderType.PRIVATE,
        eligibility=["Self-employed", "Freelancers", "High-income employees"],
        benefits=["High tax deduction potential", "Protection in insolvency", "Lifetime income"],
        tax_treatment="Contributions deductible up to the annual cap, benefits partially taxable",
        suitable_for=["Self-employed without state pension", "High-income earners"],
    ), employment_types=SELF_EMPLOYED_TYPES),
    CatalogEntry(PensionPlan(
        id="company_pension",
        name="Company Pension (Betriebliche Altersvorsorge)",
        description="Employer-sponsored pension plan with tax advantages.",
        provider_type=PensionProviderType.EMPLOYER,
        eligibility=["Employees"],
        benefits=["Employer contributions", "Tax advantages", "Social security savings"],
        tax_treatment="Contributions tax-free up to 8% of the pension ceiling, benefits taxable",
        suitable_for=["Employees with supportive employers"],
    ), employment_types=EMPLOYEE_TYPES),
    CatalogEntry(PensionPlan(
        id="direct_insurance",
        name="Direct Insurance (Direktversicherung)",
        description="Life insurance policy taken out by an employer for an employee.",
        provider_type=PensionProviderType.PRIVATE,
        eligibility=["Employees"],
        benefits=["Tax advantages", "Potential employer contributions", "Flexible payout options"],
        tax_treatment="Contributions tax-free up to limits, benefits taxable",
        suitable_for=["Employees looking for additional retirement savings"],
    )),
]


# =============================================================================
# TAX BENEFITS
# =============================================================================

TAX_BENEFITS: List[CatalogEntry] = [
    CatalogEntry(TaxBenefit(
        id="retirement_expense_deduction",
        name="Retirement Expense Deduction (Altersvorsorgeaufwendungen)",
        description="Deduction for contributions to the statutory pension insurance and Rürup plans.",
        eligibility=["All taxpayers contributing to retirement plans"],
        potential_savings="100% of qualifying contributions deductible from 2023, up to the annual cap",
    )),
    CatalogEntry(TaxBenefit(
        id="riester_subsidies",
        name="Riester Subsidies",
        description="Government allowances and tax benefits for Riester pension plans.",
        eligibility=["Contributors to Riester pension plans"],
        potential_savings="Basic allowance of €175/year, €300/year per child born after 2008",
    )),
    CatalogEntry(TaxBenefit(
        id="ruerup_deduction",
        name="Rürup Pension Tax Deduction",
        description="Substantial deductions for contributions to Rürup pension plans.",
        eligibility=["Self-employed individuals", "High-income earners"],
        potential_savings="Contributions deductible up to the annual cap",
    ), employment_types=SELF_EMPLOYED_TYPES),
    CatalogEntry(TaxBenefit(
        id="company_pension_benefits",
        name="Company Pension Tax Benefits",
        description="Tax and social security advantages for company pension contributions.",
        eligibility=["Employees with company pension plans"],
        potential_savings="Up to 8% of the pension ceiling free of tax, 4% free of social security",
    ), employment_types=EMPLOYEE_TYPES),
    CatalogEntry(TaxBenefit(
        id="property_depreciation",
        name="Property Depreciation (AfA)",
        description="Deduction for the depreciation of rental property.",
        eligibility=["Owners of rental property"],
        potential_savings="2% of the building's acquisition cost per year (3% for newer buildings)",
    ), requires_property=True),
]


# =============================================================================
# CATALOGUE
# =============================================================================

class PlanningCatalog:
    """Filters the catalogue entries that apply to a profile, in catalogue order."""

    def __init__(
        self,
        investment_ideas: List[CatalogEntry] = None,
        pension_plans: List[CatalogEntry] = None,
        tax_benefits: List[CatalogEntry] = None
    ):
        self.investment_ideas = INVESTMENT_IDEAS if investment_ideas is None else investment_ideas
        self.pension_plans = PENSION_PLANS if pension_plans is None else pension_plans
        self.tax_benefits = TAX_BENEFITS if tax_benefits is None else tax_benefits

    @staticmethod
    def _select(entries: List[CatalogEntry], profile: UserFinancialProfile) -> list:
        return [entry.item for entry in entries if entry.applies_to(profile)]

    def suggest_investment_ideas(self, profile: UserFinancialProfile) -> List[InvestmentIdea]:
        return self._select(self.investment_ideas, profile)

    def suggest_pension_plans(self, profile: UserFinancialProfile) -> List[PensionPlan]:
        return self._select(self.pension_plans, profile)

    def suggest_tax_benefits(self, profile: UserFinancialProfile) -> List[TaxBenefit]:
        return self._select(self.tax_benefits, profile)
