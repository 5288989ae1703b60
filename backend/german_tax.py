"""
Expat RRS - German Tax & Planning Constants
===========================================
Hardcoded 2024 German income tax brackets, social security rates and the
planning assumptions used by the retirement readiness engine.

These tables are the ONLY source of truth for the calculations.
Nothing here is user input.

Last Updated: 2024 Tax Year (simplified brackets)
"""

from enum import Enum
from typing import Dict, List, Tuple

# =============================================================================
# ENUMS
# =============================================================================

class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EmploymentType(str, Enum):
    EMPLOYED = "employed"
    SELF_EMPLOYED = "self-employed"
    CIVIL_SERVANT = "civil-servant"
    FREELANCER = "freelancer"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class RetirementGoal(str, Enum):
    MODEST = "modest"
    COMFORTABLE = "comfortable"
    LUXURIOUS = "luxurious"


class InvestmentExperience(str, Enum):
    NONE = "none"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# =============================================================================
# 2024 INCOME TAX BRACKETS
# Format: List of (upper_limit, marginal_rate) tuples
# The last tuple uses float('inf') for unlimited income
# =============================================================================

TAX_YEAR = 2024

TAX_BRACKETS_2024: List[Tuple[float, float]] = [
    (11604, 0.00),         # Basic allowance (Grundfreibetrag)
    (15786, 0.14),         # 14% on €11,605 to €15,786
    (66761, 0.24),         # 24% on €15,787 to €66,761
    (277826, 0.42),        # 42% on €66,762 to €277,826
    (float('inf'), 0.45)   # 45% over €277,826
]


# =============================================================================
# 2024 SOCIAL SECURITY
# Combined employer + employee rates; the employee pays half of each.
# =============================================================================

SOCIAL_SECURITY_RATES_2024 = {
    "pension": 0.186,
    "health": 0.146,
    "unemployment": 0.024,
    "care": 0.035,
}

# Monthly contribution assessment ceilings (Beitragsbemessungsgrenzen)
CONTRIBUTION_CEILINGS_2024 = {
    "pension": 7550,
    "health": 5175,
}

# Which ceiling caps each branch
CEILING_FOR_BRANCH = {
    "pension": "pension",
    "unemployment": "pension",
    "health": "health",
    "care": "health",
}


# =============================================================================
# INVESTMENT & PLANNING ASSUMPTIONS
# =============================================================================

INVESTMENT_RETURNS: Dict[RiskLevel, float] = {
    RiskLevel.LOW: 0.04,
    RiskLevel.MEDIUM: 0.06,
    RiskLevel.HIGH: 0.08,
}

# Return assumed on the pot once drawdown starts
RETIREMENT_PHASE_RETURN = 0.04
INFLATION_RATE = 0.02
SAFE_WITHDRAWAL_RATE = 0.04

# Spread applied around the expected return for best/worst outcomes
OUTCOME_SPREAD: Dict[RiskLevel, float] = {
    RiskLevel.LOW: 0.02,
    RiskLevel.MEDIUM: 0.04,
    RiskLevel.HIGH: 0.06,
}

# 1-10 risk scale -> bucket (inclusive upper bounds)
RISK_SCALE_BUCKETS: List[Tuple[int, RiskLevel]] = [
    (3, RiskLevel.LOW),
    (7, RiskLevel.MEDIUM),
    (10, RiskLevel.HIGH),
]

LIFE_EXPECTANCY_BASE: Dict[Gender, int] = {
    Gender.FEMALE: 83,
    Gender.MALE: 78,
    Gender.OTHER: 78,
}
MIN_YEARS_IN_RETIREMENT = 5

REPLACEMENT_RATIOS: Dict[RetirementGoal, float] = {
    RetirementGoal.MODEST: 0.60,
    RetirementGoal.COMFORTABLE: 0.75,
    RetirementGoal.LUXURIOUS: 0.85,
}
DEFAULT_REPLACEMENT_RATIO = 0.70


# =============================================================================
# GERMAN STATE PENSION (simplified)
# annual benefit = salary * accrual * min(years, cap) * multiplier
# =============================================================================

STATE_PENSION_ACCRUAL_RATE = 0.015
STATE_PENSION_MAX_YEARS = 40
CITIZENSHIP_PENSION_FACTOR = 1.2

EMPLOYMENT_PENSION_MULTIPLIER: Dict[EmploymentType, float] = {
    EmploymentType.CIVIL_SERVANT: 1.5,
    EmploymentType.EMPLOYED: 1.0,
    EmploymentType.SELF_EMPLOYED: 0.7,
    EmploymentType.FREELANCER: 0.6,
}


# =============================================================================
# SCORING TABLES
# =============================================================================

# The one weighting scheme for the overall score. Must sum to 1.0.
SCORE_WEIGHTS: Dict[str, float] = {
    "savings_adequacy": 0.20,
    "income_replacement": 0.20,
    "savings_rate": 0.10,
    "investment_strategy": 0.10,
    "time_horizon": 0.10,
    "income_security": 0.10,
    "investment_diversification": 0.05,
    "special_circumstances": 0.05,
    "risk_management": 0.05,
    "debt_management": 0.05,
}

# (minimum score, label), checked top-down
SCORE_CATEGORIES: List[Tuple[int, str]] = [
    (90, "Excellent"),
    (75, "Good"),
    (60, "Fair"),
    (40, "Needs Attention"),
    (0, "Critical"),
]

INCOME_SECURITY_BASE: Dict[EmploymentType, int] = {
    EmploymentType.CIVIL_SERVANT: 90,
    EmploymentType.EMPLOYED: 75,
    EmploymentType.SELF_EMPLOYED: 60,
    EmploymentType.FREELANCER: 50,
}

# (minimum years to retirement, score)
TIME_HORIZON_STEPS: List[Tuple[int, int]] = [
    (30, 100),
    (25, 90),
    (20, 80),
    (15, 70),
    (10, 60),
    (5, 40),
    (0, 20),
]

# risk level -> [(years strictly greater than, score)], last entry is the floor
INVESTMENT_STRATEGY_TABLE: Dict[RiskLevel, List[Tuple[int, int]]] = {
    RiskLevel.HIGH: [(20, 100), (10, 90), (-1, 60)],
    RiskLevel.MEDIUM: [(15, 85), (-1, 75)],
    RiskLevel.LOW: [(25, 65), (-1, 50)],
}

EXPERIENCE_BASE_SCORE: Dict[InvestmentExperience, int] = {
    InvestmentExperience.NONE: 30,
    InvestmentExperience.BEGINNER: 50,
    InvestmentExperience.INTERMEDIATE: 70,
    InvestmentExperience.ADVANCED: 90,
}

# Stand-in 1-10 score when only a risk label was given
RISK_LEVEL_SCALE_POINT: Dict[RiskLevel, int] = {
    RiskLevel.LOW: 2,
    RiskLevel.MEDIUM: 5,
    RiskLevel.HIGH: 9,
}

SPECIAL_CIRCUMSTANCES_BASE = 50
SPECIAL_CIRCUMSTANCE_BONUS = 10

REAL_ESTATE_SAVINGS_THRESHOLD = 200000
TARGET_SAVINGS_RATE = 0.20
RECOMMENDED_SAVINGS_RATE = 0.15
RESIDENCY_YEARS_THRESHOLD = 5
RETIREMENT_DELAY_YEARS = 2
ACTION_THRESHOLD = 70


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_tax_bracket_info() -> str:
    """
    Return a formatted string of the income tax brackets.
    Used by the reference endpoint.
    """
    lines = [f"{TAX_YEAR} German Income Tax Brackets:"]
    prev_limit = 0

    for limit, rate in TAX_BRACKETS_2024:
        if limit == float('inf'):
            lines.append(f"  Over €{prev_limit:,}: {rate*100:.0f}%")
        else:
            lines.append(f"  €{prev_limit:,} to €{limit:,}: {rate*100:.0f}%")
            prev_limit = limit

    return "\n".join(lines)


def split_income_by_bracket(annual_income: float) -> List[Tuple[float, float, float, float]]:
    """
    Slice an annual income across the 2024 brackets.

    Returns:
        (bracket_start, bracket_end, rate, income_in_bracket) per bracket
        the income reaches. The open top bracket ends at the income itself.
    """
    slices = []
    if annual_income <= 0:
        return slices

    remaining_income = annual_income
    prev_limit = 0

    for limit, rate in TAX_BRACKETS_2024:
        bracket_size = limit - prev_limit if limit != float('inf') else remaining_income
        taxable_in_bracket = min(remaining_income, bracket_size)

        if taxable_in_bracket <= 0:
            break

        bracket_end = limit if limit != float('inf') else prev_limit + taxable_in_bracket
        slices.append((prev_limit, bracket_end, rate, taxable_in_bracket))

        remaining_income -= taxable_in_bracket
        prev_limit = limit

        if remaining_income <= 0:
            break

    return slices


def calculate_income_tax(annual_income: float) -> float:
    """
    Calculate annual income tax using the 2024 brackets.

    Each bracket's marginal rate applies only to the part of the income
    that falls inside the bracket.

    Args:
        annual_income: Annual gross income in EUR

    Returns:
        Annual income tax in EUR (never negative)
    """
    total_tax = sum((amount * rate for _, _, rate, amount in split_income_by_bracket(annual_income)), 0.0)
    return round(total_tax, 2)


def calculate_social_security(monthly_income: float) -> float:
    """
    Employee share of pension, health, unemployment and care insurance.

    Each branch is min(income, ceiling) * half the combined rate.
    """
    if monthly_income <= 0:
        return 0.0

    total = 0.0
    for branch, rate in SOCIAL_SECURITY_RATES_2024.items():
        ceiling = CONTRIBUTION_CEILINGS_2024[CEILING_FOR_BRANCH[branch]]
        total += min(monthly_income, ceiling) * (rate / 2)

    return round(total, 2)


def calculate_net_income(gross_monthly_income: float) -> float:
    """Monthly net income after income tax and social security."""
    if gross_monthly_income <= 0:
        return 0.0

    monthly_tax = calculate_income_tax(gross_monthly_income * 12) / 12
    contributions = calculate_social_security(gross_monthly_income)
    return round(gross_monthly_income - monthly_tax - contributions, 2)


def get_marginal_rate(annual_income: float) -> float:
    """Get the marginal tax rate for a given income level."""
    for limit, rate in TAX_BRACKETS_2024:
        if annual_income <= limit:
            return rate

    return TAX_BRACKETS_2024[-1][1]


def get_effective_rate(annual_income: float) -> float:
    """Calculate the effective tax rate in percent."""
    if annual_income <= 0:
        return 0.0

    tax = calculate_income_tax(annual_income)
    return round((tax / annual_income) * 100, 2)


def resolve_risk_level(risk_score: int) -> RiskLevel:
    """Map a 1-10 risk score onto its return bucket."""
    for upper, level in RISK_SCALE_BUCKETS:
        if risk_score <= upper:
            return level
    raise ValueError(f"Risk score {risk_score} is outside 1-10")


def categorize_score(score: int) -> str:
    """Map an overall score onto its category label."""
    for minimum, label in SCORE_CATEGORIES:
        if score >= minimum:
            return label
    return SCORE_CATEGORIES[-1][1]


# =============================================================================
# EXPORT CONSTANTS FOR REFERENCE ENDPOINTS
# =============================================================================

def get_planning_assumptions() -> Dict[str, object]:
    """All fixed assumptions, in a JSON-friendly shape."""
    return {
        "tax_year": TAX_YEAR,
        "investment_returns": {level.value: rate for level, rate in INVESTMENT_RETURNS.items()},
        "retirement_phase_return": RETIREMENT_PHASE_RETURN,
        "inflation_rate": INFLATION_RATE,
        "safe_withdrawal_rate": SAFE_WITHDRAWAL_RATE,
        "life_expectancy_base": {g.value: years for g, years in LIFE_EXPECTANCY_BASE.items()},
        "replacement_ratios": {g.value: ratio for g, ratio in REPLACEMENT_RATIOS.items()},
        "default_replacement_ratio": DEFAULT_REPLACEMENT_RATIO,
        "social_security_rates": SOCIAL_SECURITY_RATES_2024,
        "contribution_ceilings": CONTRIBUTION_CEILINGS_2024,
        "score_weights": SCORE_WEIGHTS,
        "score_categories": [{"min_score": m, "category": c} for m, c in SCORE_CATEGORIES],
    }
