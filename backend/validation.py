"""
Expat RRS - Input Validation
============================
Guards the public entry point: turns a raw, untyped payload (form data or
JSON body) into a fully-typed UserFinancialProfile, or raises a
ProfileValidationError naming the offending field.

Nothing partial ever leaves this module - either the whole profile is
valid or the request is rejected.
"""

import logging
import math
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from german_tax import (
    RiskLevel,
    EmploymentType,
    Gender,
    RetirementGoal,
    InvestmentExperience,
    REPLACEMENT_RATIOS,
    DEFAULT_REPLACEMENT_RATIO,
    calculate_net_income,
    resolve_risk_level,
)
from models import UserFinancialProfile

logger = logging.getLogger(__name__)

MIN_AGE = 18
MAX_AGE = 90
MAX_RETIREMENT_AGE = 100
MIN_RISK_SCORE = 1
MAX_RISK_SCORE = 10

# Upper bound for any money amount, EUR
MAX_AMOUNT = 1_000_000_000


# =============================================================================
# ERRORS
# =============================================================================

class ProfileValidationError(ValueError):
    """Base class for all input validation failures."""

    code = "validation_error"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def to_dict(self) -> Dict[str, str]:
        return {"error": str(self), "field": self.field, "code": self.code}


class MissingFieldError(ProfileValidationError):
    code = "missing_field"


class InvalidValueError(ProfileValidationError):
    code = "invalid_value"


class InvalidEnumValueError(ProfileValidationError):
    code = "invalid_enum_value"


class OutOfRangeError(ProfileValidationError):
    code = "out_of_range"


class InvalidOrderingError(ProfileValidationError):
    code = "invalid_ordering"


# =============================================================================
# FIELD ALIASES
# The first alias is the wire name used in error messages.
# =============================================================================

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "age": ("age",),
    "retirement_age": ("retirementAge", "retirement_age"),
    "gender": ("gender",),
    "annual_salary": ("currentSalary", "current_salary", "annualSalary", "annual_salary"),
    "gross_monthly_income": ("grossMonthlyIncome", "gross_monthly_income"),
    "current_savings": ("currentSavings", "current_savings"),
    "monthly_savings": ("monthlySavings", "monthly_savings", "monthlyContribution", "monthly_contribution"),
    "risk_tolerance": ("riskTolerance", "risk_tolerance"),
    "investment_experience": ("investmentExperience", "investment_experience"),
    "employment_type": ("employmentType", "employment_type"),
    "years_in_germany": ("yearsInGermany", "years_in_germany"),
    "german_citizenship": ("germanCitizenship", "german_citizenship"),
    "has_additional_income": ("hasAdditionalIncome", "has_additional_income"),
    "additional_income_amount": ("additionalIncomeAmount", "additional_income_amount"),
    "has_property_investments": (
        "hasPropertyInvestments", "has_property_investments", "hasInvestmentProperty", "has_investment_property"
    ),
    "property_value": ("propertyValue", "property_value"),
    "has_private_pension": ("hasPrivatePension", "has_private_pension"),
    "private_pension_value": ("privatePensionValue", "private_pension_value"),
    "is_expat": ("isExpat", "is_expat"),
    "has_foreign_income": ("hasForeignIncome", "has_foreign_income"),
    "debt_level": ("debtLevel", "debt_level"),
    "retirement_goal": ("retirementGoal", "retirement_goal"),
    "desired_monthly_income": (
        "desiredRetirementIncome", "desired_retirement_income", "desiredMonthlyIncome", "desired_monthly_income"
    ),
}

BOOLEAN_FIELDS = (
    "german_citizenship",
    "has_additional_income",
    "has_property_investments",
    "has_private_pension",
    "is_expat",
    "has_foreign_income",
)

OPTIONAL_AMOUNT_FIELDS = (
    "additional_income_amount",
    "property_value",
    "private_pension_value",
    "years_in_germany",
)

TRUE_STRINGS = {"true", "yes", "1", "on"}
FALSE_STRINGS = {"false", "no", "0", "off"}


def wire_name(field: str) -> str:
    return FIELD_ALIASES[field][0]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _lookup(raw: Mapping[str, Any], field: str) -> Any:
    """Return the first non-blank value among the field's aliases."""
    for key in FIELD_ALIASES[field]:
        if key in raw and not _is_blank(raw[key]):
            return raw[key]
    return None


# =============================================================================
# COERCION HELPERS
# =============================================================================

def _to_number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidValueError(wire_name(field), "expected a number, got a boolean")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidValueError(wire_name(field), f"'{value}' is not a number")
    else:
        raise InvalidValueError(wire_name(field), f"expected a number, got {type(value).__name__}")

    if not math.isfinite(number):
        raise InvalidValueError(wire_name(field), "must be a finite number")
    return number


def _to_int(value: Any, field: str) -> int:
    number = _to_number(value, field)
    if not number.is_integer():
        raise InvalidValueError(wire_name(field), f"{value} is not a whole number")
    return int(number)


def _to_bool(value: Any, field: str) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_STRINGS:
            return True
        if normalized in FALSE_STRINGS:
            return False
    raise InvalidValueError(wire_name(field), f"'{value}' is not a boolean")


def _to_enum(value: Any, enum_cls, field: str):
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
    try:
        return enum_cls(normalized)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidEnumValueError(wire_name(field), f"'{value}' must be one of: {allowed}")


def _bounded_amount(value: float, field: str) -> float:
    if value < 0:
        raise OutOfRangeError(wire_name(field), "must not be negative")
    if value > MAX_AMOUNT:
        raise OutOfRangeError(wire_name(field), f"must not exceed {MAX_AMOUNT:,}")
    return value


def parse_risk_tolerance(value: Any) -> Tuple[RiskLevel, Optional[int]]:
    """
    Accept either a low/medium/high label or a 1-10 score.

    Returns:
        (risk bucket, raw score or None)
    """
    field = "risk_tolerance"
    allowed = "low, medium, high or an integer 1-10"

    if isinstance(value, RiskLevel):
        return value, None

    if isinstance(value, str) and value.strip().lower() in {level.value for level in RiskLevel}:
        return RiskLevel(value.strip().lower()), None

    if isinstance(value, bool):
        raise InvalidEnumValueError(wire_name(field), f"'{value}' must be {allowed}")

    try:
        score = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise InvalidEnumValueError(wire_name(field), f"'{value}' must be {allowed}")

    if not score.is_integer() or not MIN_RISK_SCORE <= score <= MAX_RISK_SCORE:
        raise InvalidEnumValueError(wire_name(field), f"'{value}' must be {allowed}")

    return resolve_risk_level(int(score)), int(score)


# =============================================================================
# VALIDATE
# =============================================================================

def _require(raw: Mapping[str, Any], field: str) -> Any:
    value = _lookup(raw, field)
    if value is None:
        raise MissingFieldError(wire_name(field), "is required")
    return value


def _resolve_gross_monthly_income(raw: Mapping[str, Any]) -> float:
    monthly = _lookup(raw, "gross_monthly_income")
    annual = _lookup(raw, "annual_salary")

    if monthly is None and annual is None:
        raise MissingFieldError(wire_name("annual_salary"), "is required (or grossMonthlyIncome)")

    if monthly is not None:
        field = "gross_monthly_income"
        supplied = _to_number(monthly, field)
        income = supplied
    else:
        field = "annual_salary"
        supplied = _to_number(annual, field)
        income = supplied / 12

    if income <= 0:
        raise OutOfRangeError(wire_name(field), "must be greater than zero")
    _bounded_amount(supplied, field)
    return income


def validate(raw: Mapping[str, Any]) -> UserFinancialProfile:
    """
    Validate and normalize a raw profile payload.

    Args:
        raw: Untyped key/value map; camelCase or snake_case keys.

    Returns:
        A frozen, fully-resolved UserFinancialProfile.

    Raises:
        ProfileValidationError (one of its subclasses) on the first problem.
    """
    if not isinstance(raw, Mapping):
        raise InvalidValueError("body", "expected a JSON object")

    # Step 1: Required fields present
    raw_age = _require(raw, "age")
    gross_monthly_income = _resolve_gross_monthly_income(raw)
    raw_current_savings = _require(raw, "current_savings")
    raw_monthly_savings = _require(raw, "monthly_savings")
    raw_risk = _require(raw, "risk_tolerance")
    raw_retirement_age = _require(raw, "retirement_age")

    # Step 2: Enumerations
    risk_tolerance, risk_score = parse_risk_tolerance(raw_risk)

    employment_value = _lookup(raw, "employment_type")
    employment_type = (
        _to_enum(employment_value, EmploymentType, "employment_type")
        if employment_value is not None else EmploymentType.EMPLOYED
    )

    gender_value = _lookup(raw, "gender")
    gender = _to_enum(gender_value, Gender, "gender") if gender_value is not None else Gender.OTHER

    goal_value = _lookup(raw, "retirement_goal")
    retirement_goal = _to_enum(goal_value, RetirementGoal, "retirement_goal") if goal_value is not None else None

    experience_value = _lookup(raw, "investment_experience")
    investment_experience = (
        _to_enum(experience_value, InvestmentExperience, "investment_experience")
        if experience_value is not None else InvestmentExperience.BEGINNER
    )

    # Step 3: Ranges and ordering
    age = _to_int(raw_age, "age")
    if not MIN_AGE <= age <= MAX_AGE:
        raise OutOfRangeError(wire_name("age"), f"must be between {MIN_AGE} and {MAX_AGE}")

    retirement_age = _to_int(raw_retirement_age, "retirement_age")
    if retirement_age <= age:
        raise InvalidOrderingError(wire_name("retirement_age"), "must be greater than current age")
    if retirement_age > MAX_RETIREMENT_AGE:
        raise OutOfRangeError(wire_name("retirement_age"), f"must not exceed {MAX_RETIREMENT_AGE}")

    current_savings = _bounded_amount(_to_number(raw_current_savings, "current_savings"), "current_savings")
    monthly_savings = _bounded_amount(_to_number(raw_monthly_savings, "monthly_savings"), "monthly_savings")

    amounts = {}
    for field in OPTIONAL_AMOUNT_FIELDS:
        value = _lookup(raw, field)
        amounts[field] = 0.0 if value is None else _bounded_amount(_to_number(value, field), field)

    debt_value = _lookup(raw, "debt_level")
    debt_level = None if debt_value is None else _bounded_amount(_to_number(debt_value, "debt_level"), "debt_level")

    flags = {field: _to_bool(_lookup(raw, field), field) for field in BOOLEAN_FIELDS}

    # Step 4: Desired retirement income - resolved once, here
    desired_value = _lookup(raw, "desired_monthly_income")
    if desired_value is not None:
        desired_monthly_income = _bounded_amount(
            _to_number(desired_value, "desired_monthly_income"), "desired_monthly_income"
        )
    else:
        ratio = REPLACEMENT_RATIOS[retirement_goal] if retirement_goal else DEFAULT_REPLACEMENT_RATIO
        desired_monthly_income = round(calculate_net_income(gross_monthly_income) * ratio, 2)

    try:
        profile = UserFinancialProfile(
            age=age,
            retirement_age=retirement_age,
            gender=gender,
            gross_monthly_income=gross_monthly_income,
            current_savings=current_savings,
            monthly_savings=monthly_savings,
            risk_tolerance=risk_tolerance,
            risk_score=risk_score,
            investment_experience=investment_experience,
            employment_type=employment_type,
            retirement_goal=retirement_goal,
            desired_monthly_income=desired_monthly_income,
            debt_level=debt_level,
            **amounts,
            **flags,
        )
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "body"
        raise InvalidValueError(
            wire_name(field) if field in FIELD_ALIASES else field, error["msg"]
        ) from exc

    logger.debug(f"Validated profile: age={age}, risk={risk_tolerance.value}, years={profile.years_to_retirement}")
    return profile
