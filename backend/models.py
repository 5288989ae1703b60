"""
Expat RRS - Data Models
=======================
Pydantic models for the retirement readiness engine.

These models serve as the contract between:
- Input validation (raw form/API payloads)
- The projection and scoring engine
- The recommendation generator
- API responses and the standardized score view
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from german_tax import (
    RiskLevel,
    EmploymentType,
    Gender,
    RetirementGoal,
    InvestmentExperience,
    INVESTMENT_RETURNS,
)


# =============================================================================
# ENUMS
# =============================================================================

class ImpactLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecommendationCategory(str, Enum):
    SAVINGS = "savings"
    INVESTMENT = "investment"
    PENSION = "pension"
    RESIDENCY = "residency"
    REAL_ESTATE = "real_estate"
    DIVERSIFICATION = "diversification"


# Sort weight per impact level (lower sorts first)
IMPACT_ORDER = {
    ImpactLevel.HIGH: 0,
    ImpactLevel.MEDIUM: 1,
    ImpactLevel.LOW: 2,
}


# =============================================================================
# USER FINANCIAL PROFILE - CORE MODEL
# =============================================================================

class UserFinancialProfile(BaseModel):
    """
    The normalized profile produced by the validator.

    Every optional input has already been resolved to a concrete value,
    so the engine never re-applies defaults mid-calculation.
    """
    model_config = ConfigDict(frozen=True)

    # Demographics
    age: int = Field(ge=18, le=90)
    retirement_age: int = Field(gt=18, le=100)
    gender: Gender = Gender.OTHER

    # Income
    gross_monthly_income: float = Field(gt=0, description="Monthly gross salary in EUR")

    # Savings state
    current_savings: float = Field(default=0.0, ge=0)
    monthly_savings: float = Field(default=0.0, ge=0)

    # Risk profile
    risk_tolerance: RiskLevel
    risk_score: Optional[int] = Field(default=None, ge=1, le=10, description="Raw 1-10 answer, if given")
    investment_experience: InvestmentExperience = InvestmentExperience.BEGINNER

    # Employment & residency
    employment_type: EmploymentType = EmploymentType.EMPLOYED
    years_in_germany: float = Field(default=0.0, ge=0)
    german_citizenship: bool = False

    # Special circumstances
    has_additional_income: bool = False
    additional_income_amount: float = Field(default=0.0, ge=0)
    has_property_investments: bool = False
    property_value: float = Field(default=0.0, ge=0)
    has_private_pension: bool = False
    private_pension_value: float = Field(default=0.0, ge=0)
    is_expat: bool = False
    has_foreign_income: bool = False
    debt_level: Optional[float] = Field(default=None, ge=0, description="None means not reported")

    # Desired outcome (resolved at validation time)
    retirement_goal: Optional[RetirementGoal] = None
    desired_monthly_income: float = Field(ge=0, description="Target monthly income in retirement, EUR")

    @model_validator(mode='after')
    def check_retirement_after_current_age(self):
        if self.retirement_age <= self.age:
            raise ValueError("retirement_age must be greater than age")
        return self

    @computed_field
    @property
    def annual_salary(self) -> float:
        return self.gross_monthly_income * 12

    @computed_field
    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.age

    @computed_field
    @property
    def expected_annual_return(self) -> float:
        """Accumulation-phase return implied by the risk bucket."""
        return INVESTMENT_RETURNS[self.risk_tolerance]


# =============================================================================
# INCOME & TAX SUMMARY
# =============================================================================

class TaxBracketBreakdown(BaseModel):
    """Details of tax calculation per bracket."""
    bracket_start: float
    bracket_end: float
    rate: float
    income_in_bracket: float
    tax_in_bracket: float


class IncomeSummary(BaseModel):
    """Gross-to-net breakdown of the current salary."""
    gross_monthly_income: float
    annual_gross_income: float
    annual_income_tax: float
    monthly_income_tax: float
    monthly_social_security: float
    net_monthly_income: float
    marginal_rate: float
    effective_rate: float
    bracket_breakdown: List[TaxBracketBreakdown] = Field(default_factory=list)


# =============================================================================
# PROJECTION RESULTS
# =============================================================================

class ProjectionResult(BaseModel):
    """Savings projection at the retirement date."""

    years_to_retirement: int
    life_expectancy: int
    years_in_retirement: int
    expected_annual_return: float

    projected_savings: float
    required_savings: float
    savings_gap: float = Field(ge=0, description="max(0, required - projected)")
    signed_savings_gap: float = Field(description="required - projected; negative = surplus")

    net_monthly_income: float
    desired_monthly_income: float
    state_pension_annual: float = 0.0

    # Income streams in retirement
    estimated_monthly_retirement_income: float = Field(description="Safe withdrawal from projected savings")
    total_monthly_retirement_income: float = Field(description="Withdrawal plus state pension")
    income_replacement_rate: float = Field(description="Withdrawal income as % of current net income")

    @computed_field
    @property
    def savings_ratio(self) -> float:
        """Projected / required savings."""
        if self.required_savings <= 0:
            return 1.0
        return self.projected_savings / self.required_savings

    @computed_field
    @property
    def desired_income_coverage(self) -> float:
        """Share of the desired retirement income covered by all streams."""
        if self.desired_monthly_income <= 0:
            return 1.0
        return self.total_monthly_retirement_income / self.desired_monthly_income


class OutcomeRange(BaseModel):
    """Deterministic best/median/worst projection around the expected return."""
    expected_return: float
    spread: float
    worst_case_outcome: float
    median_outcome: float
    best_case_outcome: float
    success_probability: int = Field(ge=0, le=100)


# =============================================================================
# SCORES
# =============================================================================

class ComponentScores(BaseModel):
    """Sub-scores, each independently derived and clamped to 0-100."""
    savings_rate: int = Field(ge=0, le=100)
    investment_strategy: int = Field(ge=0, le=100)
    risk_management: int = Field(ge=0, le=100)
    time_horizon: int = Field(ge=0, le=100)
    income_security: int = Field(ge=0, le=100)
    savings_adequacy: int = Field(ge=0, le=100)
    income_replacement: int = Field(ge=0, le=100)
    debt_management: int = Field(ge=0, le=100)
    investment_diversification: int = Field(ge=0, le=100)
    special_circumstances: int = Field(ge=0, le=100)


# =============================================================================
# RECOMMENDATION MODELS
# =============================================================================

class Recommendation(BaseModel):
    """A single rule-based recommendation."""

    id: str = Field(description="Stable rule identifier")
    impact: ImpactLevel
    priority: int = Field(default=0, ge=0, description="1-based position after sorting")
    category: RecommendationCategory

    title: str
    description: str
    action_required: str = ""


class ActionPlan(BaseModel):
    """Concrete adjustments derived from the weakest component scores."""
    prioritized_actions: List[str] = Field(default_factory=list)
    savings_adjustment: float = Field(default=0.0, ge=0, description="Suggested extra monthly savings, EUR")
    retirement_age_adjustment: int = Field(default=0, ge=0)
    investment_strategy_changes: List[str] = Field(default_factory=list)


class InvestmentAllocation(BaseModel):
    """Suggested asset mix in percent."""
    stocks: int = Field(ge=0, le=100)
    bonds: int = Field(ge=0, le=100)
    cash: int = Field(ge=0, le=100)
    alternatives: int = Field(ge=0, le=100)

    @computed_field
    @property
    def total(self) -> int:
        return self.stocks + self.bonds + self.cash + self.alternatives


class TaxOptimization(BaseModel):
    """Rough annual tax savings available through German vehicles."""
    potential_annual_savings: float = Field(ge=0)
    recommended_vehicles: List[str] = Field(default_factory=list)
    expat_specific_opportunities: List[str] = Field(default_factory=list)


# =============================================================================
# PRODUCT CATALOGUE MODELS
# =============================================================================

class InvestmentIdea(BaseModel):
    id: str
    name: str
    description: str
    risk_level: RiskLevel
    expected_return: float = Field(description="Percent per year")
    minimum_investment: float = 0.0
    tax_advantages: str = ""
    suitable_for: List[str] = Field(default_factory=list)


class PensionProviderType(str, Enum):
    GOVERNMENT = "government"
    EMPLOYER = "employer"
    PRIVATE = "private"


class PensionPlan(BaseModel):
    id: str
    name: str
    description: str
    provider_type: PensionProviderType
    eligibility: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tax_treatment: str = ""
    suitable_for: List[str] = Field(default_factory=list)


class TaxBenefit(BaseModel):
    id: str
    name: str
    description: str
    eligibility: List[str] = Field(default_factory=list)
    potential_savings: str = ""


# =============================================================================
# FINAL RESULT
# =============================================================================

class RetirementResult(BaseModel):
    """Complete retirement readiness result - the API contract."""

    score: int = Field(ge=0, le=100)
    category: str
    component_scores: ComponentScores

    projection: ProjectionResult
    income: IncomeSummary

    recommendations: List[Recommendation]
    action_plan: ActionPlan

    investment_allocation: InvestmentAllocation
    tax_optimization: TaxOptimization
    outcome_range: OutcomeRange

    investment_ideas: List[InvestmentIdea] = Field(default_factory=list)
    pension_plans: List[PensionPlan] = Field(default_factory=list)
    tax_benefits: List[TaxBenefit] = Field(default_factory=list)


# =============================================================================
# SIMULATION MODELS
# =============================================================================

class SimulationResult(BaseModel):
    """Result of a what-if simulation."""

    scenario_name: str
    changes: Dict[str, Any] = Field(default_factory=dict)
    baseline: RetirementResult
    simulated: RetirementResult

    # Differences
    score_difference: int
    projected_savings_difference: float
    savings_gap_difference: float = Field(description="Negative = gap shrinks")

    # Analysis
    is_beneficial: bool
    summary: str


# =============================================================================
# STANDARDIZED SCORE VIEW
# =============================================================================

class ScoreRecommendation(BaseModel):
    title: str
    description: str
    impact: ImpactLevel
    priority: ImpactLevel


class StandardizedScore(BaseModel):
    """Presentation shape consumed by the web UI."""
    overall: int
    category: str
    breakdown: Dict[str, int]
    recommendations: List[ScoreRecommendation]


# =============================================================================
# API REQUEST/RESPONSE MODELS
# =============================================================================

class SimulationRequest(BaseModel):
    """Request to run a what-if simulation on a raw profile."""
    profile: Dict[str, Any]
    changes: Dict[str, Any] = Field(default_factory=dict)
    scenario_name: Optional[str] = "Custom Simulation"
    use_action_plan: bool = False


class ErrorResponse(BaseModel):
    error: str
    field: Optional[str] = None
    code: Optional[str] = None
