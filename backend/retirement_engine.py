"""
Expat RRS - Retirement Engine
=============================
Core projection, scoring and recommendation engine.

All math happens here with the hardcoded tables from german_tax.py.
Every calculation is a pure function of the validated profile: no clock,
no randomness, no I/O, so the same profile always yields the same result.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from german_tax import (
    RiskLevel,
    Gender,
    EXPERIENCE_BASE_SCORE,
    RISK_LEVEL_SCALE_POINT,
    SPECIAL_CIRCUMSTANCES_BASE,
    SPECIAL_CIRCUMSTANCE_BONUS,
    RETIREMENT_PHASE_RETURN,
    INFLATION_RATE,
    SAFE_WITHDRAWAL_RATE,
    OUTCOME_SPREAD,
    LIFE_EXPECTANCY_BASE,
    MIN_YEARS_IN_RETIREMENT,
    STATE_PENSION_ACCRUAL_RATE,
    STATE_PENSION_MAX_YEARS,
    CITIZENSHIP_PENSION_FACTOR,
    EMPLOYMENT_PENSION_MULTIPLIER,
    SCORE_WEIGHTS,
    INCOME_SECURITY_BASE,
    TIME_HORIZON_STEPS,
    INVESTMENT_STRATEGY_TABLE,
    REAL_ESTATE_SAVINGS_THRESHOLD,
    TARGET_SAVINGS_RATE,
    RECOMMENDED_SAVINGS_RATE,
    RESIDENCY_YEARS_THRESHOLD,
    RETIREMENT_DELAY_YEARS,
    ACTION_THRESHOLD,
    calculate_income_tax,
    split_income_by_bracket,
    calculate_social_security,
    calculate_net_income,
    categorize_score,
    get_marginal_rate,
    get_effective_rate,
)
from models import (
    UserFinancialProfile,
    TaxBracketBreakdown,
    IncomeSummary,
    ProjectionResult,
    OutcomeRange,
    ComponentScores,
    Recommendation,
    RecommendationCategory,
    ImpactLevel,
    IMPACT_ORDER,
    ActionPlan,
    InvestmentAllocation,
    TaxOptimization,
    RetirementResult,
    SimulationResult,
)
from validation import (
    FIELD_ALIASES,
    MAX_RETIREMENT_AGE,
    InvalidValueError,
    parse_risk_tolerance,
    validate,
    wire_name,
)
from planning_catalog import PlanningCatalog

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_score(value: float) -> int:
    """Round and clamp a raw score into 0-100. NaN scores 0, infinities clamp."""
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return 100 if value > 0 else 0
    return max(0, min(100, _round_half_up(value)))


# =============================================================================
# INCOME TAX CALCULATOR
# =============================================================================

class IncomeTaxCalculator:
    """
    Gross-to-net breakdown for a monthly salary.
    All calculations use the hardcoded 2024 tables.
    """

    def summarize(self, gross_monthly_income: float) -> IncomeSummary:
        annual_income = gross_monthly_income * 12
        annual_tax, breakdown = self._calculate_tax_with_breakdown(annual_income)

        return IncomeSummary(
            gross_monthly_income=round(gross_monthly_income, 2),
            annual_gross_income=round(annual_income, 2),
            annual_income_tax=annual_tax,
            monthly_income_tax=round(annual_tax / 12, 2),
            monthly_social_security=calculate_social_security(gross_monthly_income),
            net_monthly_income=calculate_net_income(gross_monthly_income),
            marginal_rate=get_marginal_rate(annual_income),
            effective_rate=get_effective_rate(annual_income),
            bracket_breakdown=breakdown,
        )

    def _calculate_tax_with_breakdown(self, annual_income: float):
        """Calculate tax with detailed bracket breakdown."""
        breakdown = [
            TaxBracketBreakdown(
                bracket_start=start,
                bracket_end=end,
                rate=rate,
                income_in_bracket=round(amount, 2),
                tax_in_bracket=round(amount * rate, 2)
            )
            for start, end, rate, amount in split_income_by_bracket(annual_income)
        ]
        return calculate_income_tax(annual_income), breakdown


# =============================================================================
# PROJECTION ENGINE
# =============================================================================

class ProjectionEngine:
    """
    Compound-growth and annuity calculations.

    Example:
        ProjectionEngine.future_value(500, 30, 0.06, 10000)
    """

    @staticmethod
    def future_value(
        monthly_contribution: float,
        years: float,
        annual_rate: float,
        initial_amount: float = 0.0
    ) -> float:
        """
        Future value of a lump sum plus monthly contributions.

        Args:
            monthly_contribution: Paid at the end of every month
            years: Accumulation period
            annual_rate: Nominal annual rate (decimal), compounded monthly
            initial_amount: Starting balance

        Returns:
            Balance at the end of the period
        """
        months = years * 12

        if annual_rate == 0:
            return initial_amount + monthly_contribution * months

        monthly_rate = annual_rate / 12
        growth = math.pow(1 + monthly_rate, months)
        return initial_amount * growth + monthly_contribution * ((growth - 1) / monthly_rate)

    @staticmethod
    def required_savings(
        desired_monthly_income: float,
        years_in_retirement: float,
        inflation_rate: float = INFLATION_RATE,
        investment_return_rate: float = RETIREMENT_PHASE_RETURN
    ) -> float:
        """
        Present value of an inflation-adjusted monthly annuity.

        The nominal return is deflated to a real return,
        (1 + nominal) / (1 + inflation) - 1, then spread over the months
        of retirement.
        """
        months = years_in_retirement * 12
        if months <= 0:
            return 0.0

        real_return = (1 + investment_return_rate) / (1 + inflation_rate) - 1
        monthly_rate = real_return / 12

        if monthly_rate == 0:
            return desired_monthly_income * months

        return desired_monthly_income * (1 - math.pow(1 + monthly_rate, -months)) / monthly_rate

    @staticmethod
    def estimate_life_expectancy(gender: Gender, age: int) -> int:
        """Base expectancy plus one year per full decade lived past 30."""
        base = LIFE_EXPECTANCY_BASE.get(gender, LIFE_EXPECTANCY_BASE[Gender.OTHER])
        return base + max(0, (age - 30) // 10)

    @staticmethod
    def estimate_state_pension(profile: UserFinancialProfile) -> float:
        """Annual German state pension estimate in EUR."""
        contribution_years = min(profile.years_in_germany, STATE_PENSION_MAX_YEARS)
        base_benefit = profile.annual_salary * STATE_PENSION_ACCRUAL_RATE * contribution_years
        multiplier = EMPLOYMENT_PENSION_MULTIPLIER[profile.employment_type]
        citizenship = CITIZENSHIP_PENSION_FACTOR if profile.german_citizenship else 1.0
        return base_benefit * multiplier * citizenship

    def project(self, profile: UserFinancialProfile) -> ProjectionResult:
        """Project savings at the retirement date against what is needed."""
        years_to_retirement = profile.years_to_retirement
        life_expectancy = self.estimate_life_expectancy(profile.gender, profile.age)
        years_in_retirement = max(MIN_YEARS_IN_RETIREMENT, life_expectancy - profile.retirement_age)

        projected = self.future_value(
            profile.monthly_savings,
            years_to_retirement,
            profile.expected_annual_return,
            profile.current_savings
        )
        required = self.required_savings(profile.desired_monthly_income, years_in_retirement)

        net_monthly_income = calculate_net_income(profile.gross_monthly_income)
        state_pension = self.estimate_state_pension(profile)

        withdrawal_income = projected * SAFE_WITHDRAWAL_RATE / 12
        total_income = withdrawal_income + state_pension / 12
        replacement_rate = (withdrawal_income / net_monthly_income) * 100 if net_monthly_income > 0 else 0.0

        return ProjectionResult(
            years_to_retirement=years_to_retirement,
            life_expectancy=life_expectancy,
            years_in_retirement=years_in_retirement,
            expected_annual_return=profile.expected_annual_return,
            projected_savings=round(projected, 2),
            required_savings=round(required, 2),
            savings_gap=round(max(0.0, required - projected), 2),
            signed_savings_gap=round(required - projected, 2),
            net_monthly_income=net_monthly_income,
            desired_monthly_income=profile.desired_monthly_income,
            state_pension_annual=round(state_pension, 2),
            estimated_monthly_retirement_income=round(withdrawal_income, 2),
            total_monthly_retirement_income=round(total_income, 2),
            income_replacement_rate=round(replacement_rate, 1),
        )

    def outcome_range(self, profile: UserFinancialProfile, required_savings: float) -> OutcomeRange:
        """
        Best/median/worst projections at the expected return plus or minus
        the risk bucket's spread.
        """
        expected = profile.expected_annual_return
        spread = OUTCOME_SPREAD[profile.risk_tolerance]
        years = profile.years_to_retirement

        median = self.future_value(profile.monthly_savings, years, expected, profile.current_savings)
        worst = self.future_value(profile.monthly_savings, years, expected - spread, profile.current_savings)
        best = self.future_value(profile.monthly_savings, years, expected + spread, profile.current_savings)

        if required_savings <= 0:
            success = 100
        else:
            success = _clamp_score(median / required_savings * 100)

        return OutcomeRange(
            expected_return=expected,
            spread=spread,
            worst_case_outcome=round(worst, 2),
            median_outcome=round(median, 2),
            best_case_outcome=round(best, 2),
            success_probability=success,
        )

    def build_savings_timeline(self, profile: UserFinancialProfile) -> pd.DataFrame:
        """Year-by-year balance from today until the retirement date."""
        rows = []
        rate = profile.expected_annual_return

        for year in range(profile.years_to_retirement + 1):
            balance = self.future_value(profile.monthly_savings, year, rate, profile.current_savings)
            contributions = profile.current_savings + profile.monthly_savings * 12 * year
            rows.append({
                "year": year,
                "age": profile.age + year,
                "contributions": round(contributions, 2),
                "balance": round(balance, 2),
                "growth": round(balance - contributions, 2),
            })

        return pd.DataFrame(rows, columns=["year", "age", "contributions", "balance", "growth"])


# =============================================================================
# READINESS SCORER
# =============================================================================

class ReadinessScorer:
    """
    Turns a profile and its projection into component scores,
    an overall 0-100 score and a category.
    """

    def score_components(self, profile: UserFinancialProfile, projection: ProjectionResult) -> ComponentScores:
        return ComponentScores(
            savings_rate=self.savings_rate_score(profile),
            investment_strategy=self.investment_strategy_score(profile),
            risk_management=self.risk_management_score(profile),
            time_horizon=self.time_horizon_score(profile.years_to_retirement),
            income_security=self.income_security_score(profile),
            savings_adequacy=self.savings_adequacy_score(projection),
            income_replacement=self.income_replacement_score(projection),
            debt_management=self.debt_management_score(profile),
            investment_diversification=self.investment_diversification_score(profile),
            special_circumstances=self.special_circumstances_score(profile),
        )

    @staticmethod
    def savings_rate_score(profile: UserFinancialProfile) -> int:
        """A 20% savings rate maps to 100."""
        savings_rate = profile.monthly_savings / profile.gross_monthly_income
        return _clamp_score(savings_rate / TARGET_SAVINGS_RATE * 100)

    @staticmethod
    def investment_strategy_score(profile: UserFinancialProfile) -> int:
        years = profile.years_to_retirement
        for min_years, score in INVESTMENT_STRATEGY_TABLE[profile.risk_tolerance]:
            if years > min_years:
                return score
        return INVESTMENT_STRATEGY_TABLE[profile.risk_tolerance][-1][1]

    @staticmethod
    def risk_management_score(profile: UserFinancialProfile) -> int:
        points = 0
        if profile.has_additional_income:
            points += 20
        if profile.has_property_investments:
            points += 25
        if profile.has_private_pension:
            points += 25
        if profile.years_in_germany >= RESIDENCY_YEARS_THRESHOLD:
            points += 15
        if profile.german_citizenship:
            points += 15
        return _clamp_score(points)

    @staticmethod
    def time_horizon_score(years_to_retirement: int) -> int:
        for min_years, score in TIME_HORIZON_STEPS:
            if years_to_retirement >= min_years:
                return score
        return TIME_HORIZON_STEPS[-1][1]

    @staticmethod
    def income_security_score(profile: UserFinancialProfile) -> int:
        security = INCOME_SECURITY_BASE[profile.employment_type]
        if profile.has_additional_income:
            security += 10
        if profile.has_property_investments:
            security += 10
        if profile.has_private_pension:
            security += 10
        return _clamp_score(security)

    @staticmethod
    def savings_adequacy_score(projection: ProjectionResult) -> int:
        ratio = projection.savings_ratio
        if ratio >= 1.0:
            return 100
        if ratio >= 0.8:
            return 80
        if ratio >= 0.6:
            return 60
        if ratio >= 0.4:
            return 40
        return 20

    @staticmethod
    def income_replacement_score(projection: ProjectionResult) -> int:
        coverage = projection.desired_income_coverage
        if coverage >= 0.9:
            return 100
        if coverage >= 0.8:
            return 85
        if coverage >= 0.7:
            return 70
        if coverage >= 0.6:
            return 55
        if coverage >= 0.5:
            return 40
        return 25

    @staticmethod
    def debt_management_score(profile: UserFinancialProfile) -> int:
        # Unreported debt scores as average
        if profile.debt_level is None:
            return 70

        debt_to_income = profile.debt_level / profile.annual_salary
        if debt_to_income < 0.2:
            return 100
        if debt_to_income < 0.4:
            return 75
        if debt_to_income < 0.6:
            return 50
        if debt_to_income < 0.8:
            return 25
        return 0

    @staticmethod
    def investment_diversification_score(profile: UserFinancialProfile) -> int:
        """
        Experience base score, discounted by how far the risk appetite sits
        from the age-appropriate point on the 1-10 scale (10 minus decades).
        """
        base = EXPERIENCE_BASE_SCORE[profile.investment_experience]
        risk = profile.risk_score
        if risk is None:
            risk = RISK_LEVEL_SCALE_POINT[profile.risk_tolerance]
        ideal_risk = max(1, 10 - profile.age // 10)
        alignment = 1 - abs(risk - ideal_risk) / 10
        return _clamp_score(base * alignment)

    @staticmethod
    def special_circumstances_score(profile: UserFinancialProfile) -> int:
        score = SPECIAL_CIRCUMSTANCES_BASE
        for flag in (profile.is_expat, profile.has_property_investments, profile.has_foreign_income):
            if flag:
                score += SPECIAL_CIRCUMSTANCE_BONUS
        return _clamp_score(score)

    @staticmethod
    def overall_score(components: ComponentScores) -> int:
        """Weighted average using SCORE_WEIGHTS."""
        values = components.model_dump()
        weighted = sum(values[name] * weight for name, weight in SCORE_WEIGHTS.items())
        return _clamp_score(weighted)

    @staticmethod
    def categorize(score: int) -> str:
        return categorize_score(score)


# =============================================================================
# RECOMMENDATION ENGINE
# =============================================================================

class RecommendationEngine:
    """
    Rule-based recommendations and action plan.
    Rules run in a fixed order and emit at most one item each.
    """

    def generate_recommendations(
        self,
        profile: UserFinancialProfile,
        projection: ProjectionResult
    ) -> List[Recommendation]:
        recs = []
        has_gap = projection.savings_gap > 0
        years = profile.years_to_retirement

        # 1. Contribution level
        recommended_savings = profile.gross_monthly_income * RECOMMENDED_SAVINGS_RATE
        if has_gap and profile.monthly_savings < recommended_savings:
            recs.append(Recommendation(
                id="increase_contributions",
                impact=ImpactLevel.HIGH,
                category=RecommendationCategory.SAVINGS,
                title="Increase Your Monthly Contributions",
                description=f"Increase your monthly retirement contributions to at least 15% of your income "
                            f"(€{recommended_savings:,.0f} instead of €{profile.monthly_savings:,.0f}).",
                action_required="Set up a standing order for the higher amount on payday."
            ))

        # 2. Growth strategy
        if has_gap and profile.risk_tolerance == RiskLevel.LOW and years > 10:
            recs.append(Recommendation(
                id="higher_growth_strategy",
                impact=ImpactLevel.HIGH,
                category=RecommendationCategory.INVESTMENT,
                title="Consider a Higher-Growth Strategy",
                description=f"With {years} years until retirement, a more growth-oriented investment "
                            f"strategy can close part of your €{projection.savings_gap:,.0f} gap.",
                action_required="Move part of new contributions into broad equity ETFs."
            ))

        # 3. Private pension
        if has_gap and not profile.has_private_pension:
            recs.append(Recommendation(
                id="private_pension",
                impact=ImpactLevel.MEDIUM,
                category=RecommendationCategory.PENSION,
                title="Explore Private Pension Options",
                description="Explore private pension options such as Riester or Rürup plans "
                            "to supplement your state pension.",
                action_required="Compare subsidised private pension products and their tax treatment."
            ))

        # 4. Residency
        if profile.years_in_germany < RESIDENCY_YEARS_THRESHOLD and not profile.german_citizenship:
            recs.append(Recommendation(
                id="residency_benefits",
                impact=ImpactLevel.MEDIUM,
                category=RecommendationCategory.RESIDENCY,
                title="Investigate Residency & Benefit Options",
                description="Investigate legal residency options to maximize your German retirement benefits "
                            "and check which social security agreements cover your home country.",
                action_required="Request your contribution record from the Deutsche Rentenversicherung."
            ))

        # 5. Real estate
        if not profile.has_property_investments and projection.projected_savings > REAL_ESTATE_SAVINGS_THRESHOLD:
            recs.append(Recommendation(
                id="real_estate",
                impact=ImpactLevel.MEDIUM,
                category=RecommendationCategory.REAL_ESTATE,
                title="Consider Real Estate",
                description="Consider real estate investments as part of your retirement portfolio.",
                action_required="Assess whether buying a home or rental property fits your plans in Germany."
            ))

        recs.sort(key=lambda rec: IMPACT_ORDER[rec.impact])

        # 6. Always last
        recs.append(Recommendation(
            id="diversify",
            impact=ImpactLevel.LOW,
            category=RecommendationCategory.DIVERSIFICATION,
            title="Diversify Across Asset Classes",
            description="Ensure your retirement savings are diversified across different asset classes.",
            action_required="Review your portfolio mix at least once a year."
        ))

        return [rec.model_copy(update={"priority": position}) for position, rec in enumerate(recs, start=1)]

    def build_action_plan(
        self,
        profile: UserFinancialProfile,
        projection: ProjectionResult,
        components: ComponentScores
    ) -> ActionPlan:
        """Concrete adjustments, weakest component first."""
        prioritized_actions = []
        investment_strategy_changes = []
        retirement_age_adjustment = 0

        months_left = profile.years_to_retirement * 12
        savings_adjustment = round(max(0.0, projection.signed_savings_gap) / months_left, 2)

        candidates = [
            ("savings_adequacy", components.savings_adequacy),
            ("income_replacement", components.income_replacement),
            ("debt_management", components.debt_management),
            ("investment_strategy", components.investment_strategy),
            ("risk_management", components.risk_management),
        ]
        candidates.sort(key=lambda item: item[1])

        for name, score in candidates:
            if score >= ACTION_THRESHOLD:
                continue

            if name == "savings_adequacy":
                prioritized_actions.append(f"Consider delaying retirement by {RETIREMENT_DELAY_YEARS} years")
                retirement_age_adjustment = RETIREMENT_DELAY_YEARS
            elif name == "income_replacement":
                prioritized_actions.append(self._income_action(profile, projection, savings_adjustment))
            elif name == "debt_management":
                prioritized_actions.append("Focus on reducing high-interest debt before retirement")
            elif name == "investment_strategy":
                prioritized_actions.append("Align your investment strategy with your time horizon")
                investment_strategy_changes.append(self._strategy_change(profile))
            elif name == "risk_management":
                prioritized_actions.append("Review and diversify your retirement income sources")
                investment_strategy_changes.append("Increase diversification across asset classes")

        if len(prioritized_actions) < 2:
            prioritized_actions.append("Regularly review and adjust your retirement plan")

        return ActionPlan(
            prioritized_actions=prioritized_actions,
            savings_adjustment=savings_adjustment,
            retirement_age_adjustment=retirement_age_adjustment,
            investment_strategy_changes=investment_strategy_changes,
        )

    @staticmethod
    def _income_action(
        profile: UserFinancialProfile,
        projection: ProjectionResult,
        savings_adjustment: float
    ) -> str:
        if savings_adjustment > 0:
            return f"Increase retirement savings by €{savings_adjustment:,.2f} per month"

        # Savings cover the pot, but withdrawals still fall short of the target income
        shortfall = projection.desired_monthly_income - projection.total_monthly_retirement_income
        if shortfall <= 0:
            return "Review how your retirement income streams cover your target income"

        extra_pot = shortfall * 12 / SAFE_WITHDRAWAL_RATE
        growth_per_euro = ProjectionEngine.future_value(1, profile.years_to_retirement, profile.expected_annual_return)
        extra_monthly = extra_pot / growth_per_euro
        return f"Increase retirement savings by about €{extra_monthly:,.2f} per month to reach your target income"

    @staticmethod
    def _strategy_change(profile: UserFinancialProfile) -> str:
        if profile.risk_tolerance == RiskLevel.LOW:
            return "Shift part of your portfolio toward growth assets"
        if profile.risk_tolerance == RiskLevel.HIGH:
            return "Reduce equity exposure as retirement approaches"
        return "Rebalance toward your target allocation"

    @staticmethod
    def recommend_allocation(profile: UserFinancialProfile) -> InvestmentAllocation:
        """Age-based asset mix, shifted by risk level. Always sums to 100."""
        risk_adjustment = {RiskLevel.LOW: -10, RiskLevel.MEDIUM: 0, RiskLevel.HIGH: 10}[profile.risk_tolerance]
        stocks = min(90, max(20, 110 - profile.age + risk_adjustment))
        bonds = max(5, 90 - stocks)
        remainder = 100 - stocks - bonds
        cash = min(5, remainder)

        return InvestmentAllocation(
            stocks=stocks,
            bonds=bonds,
            cash=cash,
            alternatives=remainder - cash,
        )

    @staticmethod
    def estimate_tax_optimization(profile: UserFinancialProfile) -> TaxOptimization:
        annual_income = profile.annual_salary
        potential_savings = annual_income * 0.02
        recommended_vehicles = ["Riester Pension", "Rürup Pension"]
        expat_opportunities = []

        if profile.is_expat:
            potential_savings += annual_income * 0.02
            expat_opportunities.append("Double taxation treaty benefits")
            expat_opportunities.append("Totalization of foreign pension periods")

        if profile.has_property_investments:
            potential_savings += annual_income * 0.01
            recommended_vehicles.append("Property depreciation (AfA)")

        if profile.has_foreign_income:
            potential_savings += annual_income * 0.02
            expat_opportunities.append("Foreign tax credits")

        return TaxOptimization(
            potential_annual_savings=round(potential_savings),
            recommended_vehicles=recommended_vehicles,
            expat_specific_opportunities=expat_opportunities,
        )


# =============================================================================
# RETIREMENT CALCULATOR
# =============================================================================

class RetirementCalculator:
    """
    Runs the whole pipeline for a validated profile.

    Example:
        result = RetirementCalculator().calculate(validate(payload))
    """

    def __init__(self):
        self.tax_calculator = IncomeTaxCalculator()
        self.projector = ProjectionEngine()
        self.scorer = ReadinessScorer()
        self.recommender = RecommendationEngine()
        self.catalog = PlanningCatalog()

    def calculate(self, profile: UserFinancialProfile) -> RetirementResult:
        projection = self.projector.project(profile)
        components = self.scorer.score_components(profile, projection)
        score = self.scorer.overall_score(components)

        logger.debug(
            f"Scored profile: score={score} projected={projection.projected_savings} "
            f"required={projection.required_savings}"
        )

        return RetirementResult(
            score=score,
            category=self.scorer.categorize(score),
            component_scores=components,
            projection=projection,
            income=self.tax_calculator.summarize(profile.gross_monthly_income),
            recommendations=self.recommender.generate_recommendations(profile, projection),
            action_plan=self.recommender.build_action_plan(profile, projection, components),
            investment_allocation=self.recommender.recommend_allocation(profile),
            tax_optimization=self.recommender.estimate_tax_optimization(profile),
            outcome_range=self.projector.outcome_range(profile, projection.required_savings),
            investment_ideas=self.catalog.suggest_investment_ideas(profile),
            pension_plans=self.catalog.suggest_pension_plans(profile),
            tax_benefits=self.catalog.suggest_tax_benefits(profile),
        )

    def calculate_raw(self, raw: Dict[str, Any]) -> RetirementResult:
        """Validate a raw payload, then calculate."""
        return self.calculate(validate(raw))


# =============================================================================
# SCENARIO SIMULATOR (What-If Scenarios)
# =============================================================================

# Keys that add to the current value instead of replacing it
ADDITIVE_CHANGES = {
    "extra_monthly_savings": "monthly_savings",
    "extra_current_savings": "current_savings",
    "delay_retirement_years": "retirement_age",
}

COMPUTED_FIELDS = {"annual_salary", "years_to_retirement", "expected_annual_return"}

# Either key re-derives both the risk bucket and the raw 1-10 score
RISK_CHANGES = {"risk_tolerance", "risk_score"}


class ScenarioSimulator:
    """
    Run what-if simulations against a baseline profile.

    Example:
        simulator = ScenarioSimulator(profile)
        result = simulator.run_simulation({'extra_monthly_savings': 200})
    """

    def __init__(self, profile: Optional[UserFinancialProfile] = None):
        self.profile = profile
        self.calculator = RetirementCalculator()

    def set_profile(self, profile: UserFinancialProfile):
        """Set the baseline profile for simulations."""
        self.profile = profile

    def run_simulation(
        self,
        changes: Dict[str, Any],
        scenario_name: str = "Custom Simulation"
    ) -> SimulationResult:
        """
        Run a single simulation with specified changes.

        Args:
            changes: Field changes to apply. 'extra_monthly_savings',
                    'extra_current_savings' and 'delay_retirement_years'
                    add to the existing values; other keys replace.
            scenario_name: Name for this scenario

        Returns:
            SimulationResult comparing baseline to simulated
        """
        if self.profile is None:
            raise ValueError("No profile set. Call set_profile() first.")

        baseline = self.calculator.calculate(self.profile)
        modified_profile = self._apply_changes(self.profile, changes)
        simulated = self.calculator.calculate(modified_profile)

        score_diff = simulated.score - baseline.score
        savings_diff = simulated.projection.projected_savings - baseline.projection.projected_savings
        gap_diff = simulated.projection.savings_gap - baseline.projection.savings_gap

        is_beneficial = score_diff > 0 or gap_diff < 0

        if score_diff > 0:
            summary = f"This change would raise your score by {score_diff} points to {simulated.score}."
        elif score_diff < 0:
            summary = f"This change would lower your score by {abs(score_diff)} points to {simulated.score}."
        else:
            summary = f"This change would leave your score at {simulated.score}."
        if gap_diff < 0:
            summary += f" Your savings gap shrinks by €{abs(gap_diff):,.0f}."

        return SimulationResult(
            scenario_name=scenario_name,
            changes=dict(changes),
            baseline=baseline,
            simulated=simulated,
            score_difference=score_diff,
            projected_savings_difference=round(savings_diff, 2),
            savings_gap_difference=round(gap_diff, 2),
            is_beneficial=is_beneficial,
            summary=summary
        )

    def simulate_action_plan(self) -> SimulationResult:
        """Apply the action plan's savings increase and retirement delay."""
        if self.profile is None:
            raise ValueError("No profile set. Call set_profile() first.")

        plan = self.calculator.calculate(self.profile).action_plan
        changes = {}

        if plan.savings_adjustment > 0:
            changes["extra_monthly_savings"] = plan.savings_adjustment

        delay = min(plan.retirement_age_adjustment, MAX_RETIREMENT_AGE - self.profile.retirement_age)
        if delay > 0:
            changes["delay_retirement_years"] = delay

        return self.run_simulation(changes, "Follow Action Plan")

    def _apply_changes(
        self,
        profile: UserFinancialProfile,
        changes: Dict[str, Any]
    ) -> UserFinancialProfile:
        """Apply changes to create a modified, re-validated profile."""
        data = profile.model_dump(exclude=COMPUTED_FIELDS)

        for key, value in changes.items():
            if key in ADDITIVE_CHANGES:
                target = ADDITIVE_CHANGES[key]
                try:
                    data[target] = data[target] + value
                except TypeError:
                    raise InvalidValueError(key, f"'{value}' is not a number")
                continue

            if key in RISK_CHANGES:
                data["risk_tolerance"], data["risk_score"] = parse_risk_tolerance(value)
                continue

            if key not in data:
                raise InvalidValueError(key, "is not a profile field")

            data[key] = value

        try:
            return UserFinancialProfile.model_validate(data)
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error.get("loc") else "changes"
            raise InvalidValueError(
                wire_name(field) if field in FIELD_ALIASES else field, error["msg"]
            ) from exc
