"""Guaranteed lifetime income versus expenses, year by year."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_TERMINAL_AGE = 95

# Horizon for the purchasing-power and "coverage later" figures
PROJECTION_CHECKPOINT_YEARS = 20


class IncomeSourceType(str, Enum):
    SOCIAL_SECURITY_CLIENT = "social-security-client"
    SOCIAL_SECURITY_SPOUSE = "social-security-spouse"
    PENSION_CLIENT = "pension-client"
    PENSION_SPOUSE = "pension-spouse"
    GUARANTEED_ANNUITY = "guaranteed-annuity"
    OTHER_GUARANTEED = "other-guaranteed"

    @property
    def label(self) -> str:
        return SOURCE_TYPE_LABELS[self]


SOURCE_TYPE_LABELS: dict[IncomeSourceType, str] = {
    IncomeSourceType.SOCIAL_SECURITY_CLIENT: "Social Security (Client)",
    IncomeSourceType.SOCIAL_SECURITY_SPOUSE: "Social Security (Spouse)",
    IncomeSourceType.PENSION_CLIENT: "Pension (Client)",
    IncomeSourceType.PENSION_SPOUSE: "Pension (Spouse)",
    IncomeSourceType.GUARANTEED_ANNUITY: "Guaranteed Annuity",
    IncomeSourceType.OTHER_GUARANTEED: "Other Guaranteed Income",
}


class ProjectionView(str, Enum):
    NOMINAL = "nominal"
    REAL = "real"


@dataclass(frozen=True)
class GuaranteedIncomeSource:
    """
    A stream of income the client cannot outlive.

    Attributes:
        name: Display name (falls back to the source type label)
        monthly_amount: Monthly payment in today's dollars at the start age
        start_age: Client age at which payments begin
        inflation_adjusted: True when payments carry a cost-of-living adjustment
        guaranteed_for_life: False for term-certain payments
        source_type: Kind of income stream
    """

    name: str
    monthly_amount: float
    start_age: int
    inflation_adjusted: bool = False
    guaranteed_for_life: bool = True
    source_type: IncomeSourceType = IncomeSourceType.OTHER_GUARANTEED

    @property
    def display_name(self) -> str:
        return self.name or self.source_type.label


@dataclass(frozen=True)
class LifetimeIncomeInputs:
    """Monthly expense budget and guaranteed income sources."""

    core_expenses_monthly: float = 0.0
    discretionary_expenses_monthly: float = 0.0
    healthcare_monthly: float = 0.0
    sources: tuple[GuaranteedIncomeSource, ...] = field(default_factory=tuple)

    @property
    def total_expenses_monthly(self) -> float:
        return (
            self.core_expenses_monthly
            + self.discretionary_expenses_monthly
            + self.healthcare_monthly
        )

    @property
    def has_data(self) -> bool:
        return self.core_expenses_monthly > 0 or len(self.sources) > 0


@dataclass(frozen=True)
class IncomeProjectionRow:
    """
    Income and expenses at one age.

    Coverage percentages are None when the matching expense base is zero.
    """

    age: int
    cola_income: float
    non_cola_income: float
    total_income: float
    core_expenses: float
    total_expenses: float
    coverage_pct: float | None
    total_coverage_pct: float | None


@dataclass(frozen=True)
class LifetimeIncomeProjection:
    """
    Year-by-year income coverage from the client's age to the terminal age.

    Attributes:
        rows: One row per age, ascending
        view: Nominal dollars or today's dollars
        core_coverage_today: Core coverage percent at the current age
        total_coverage_today: Total-expense coverage percent at the current age
        coverage_in_20_years: Core coverage percent twenty years out, if projected
        full_coverage_age: First age with core coverage of at least 100%
        monthly_shortfall: Core expenses not covered today, in today's dollars
        monthly_surplus: Income above core expenses today, in today's dollars
        purchasing_power_loss_20y: Fraction of real value non-COLA lifetime
            income loses over twenty years (0 when there is none)
        inflation_rate: Annual inflation used for the projection
    """

    rows: list[IncomeProjectionRow]
    view: ProjectionView
    core_coverage_today: float | None
    total_coverage_today: float | None
    coverage_in_20_years: float | None
    full_coverage_age: int | None
    monthly_shortfall: float
    monthly_surplus: float
    purchasing_power_loss_20y: float
    inflation_rate: float

    def row_at(self, age: int) -> IncomeProjectionRow | None:
        for row in self.rows:
            if row.age == age:
                return row
        return None


@dataclass(frozen=True)
class IncomeCoverageSummary:
    """Static snapshot of guaranteed lifetime income against today's budget."""

    core_expenses_monthly: float
    total_expenses_monthly: float
    guaranteed_income_monthly: float
    core_coverage_ratio: float
    total_coverage_ratio: float
    shortfall_monthly: float
    surplus_monthly: float
    needs_data_entry: bool


def _coverage(income: float, expenses: float) -> float | None:
    if expenses <= 0:
        return None
    return income / expenses * 100


def _income_at_age(
    sources: tuple[GuaranteedIncomeSource, ...], age: int, inflation_rate: float
) -> tuple[float, float]:
    """Nominal (COLA, non-COLA) monthly income from sources active at ``age``."""
    cola = 0.0
    non_cola = 0.0
    for source in sources:
        if source.start_age > age:
            continue
        if source.inflation_adjusted:
            cola += source.monthly_amount * (1 + inflation_rate) ** (age - source.start_age)
        else:
            non_cola += source.monthly_amount
    return cola, non_cola


def purchasing_power_loss(inflation_rate: float, years: int = PROJECTION_CHECKPOINT_YEARS) -> float:
    """Fraction of real value a flat payment loses over ``years`` of inflation."""
    return 1 - (1 + inflation_rate) ** -years


def project_lifetime_income(
    inputs: LifetimeIncomeInputs,
    client_age: int,
    inflation_rate: float,
    terminal_age: int = DEFAULT_TERMINAL_AGE,
    view: ProjectionView = ProjectionView.NOMINAL,
) -> LifetimeIncomeProjection:
    """
    Project guaranteed income against expenses for every age to ``terminal_age``.

    COLA sources compound with inflation from their own start age while
    non-COLA sources stay flat. The nominal view grows expenses with
    inflation from today; the real view instead deflates income to today's
    dollars and holds expenses flat. Coverage ratios are the same in both.

    Args:
        inputs: Expense budget and income sources
        client_age: Age today (first projected row)
        inflation_rate: Annual inflation rate
        terminal_age: Last projected age (inclusive)
        view: Dollar basis for the reported amounts

    Returns:
        LifetimeIncomeProjection (no rows when client_age > terminal_age)
    """
    core = inputs.core_expenses_monthly
    total = inputs.total_expenses_monthly

    if client_age > terminal_age:
        logger.warning(f"Client age {client_age} is past terminal age {terminal_age}")

    rows: list[IncomeProjectionRow] = []
    for age in range(client_age, terminal_age + 1):
        factor = (1 + inflation_rate) ** (age - client_age)
        cola, non_cola = _income_at_age(inputs.sources, age, inflation_rate)
        income = cola + non_cola

        # Coverage is measured in today's dollars so both views agree
        real_income = income / factor
        coverage = _coverage(real_income, core)
        total_coverage = _coverage(real_income, total)

        if view is ProjectionView.REAL:
            rows.append(
                IncomeProjectionRow(
                    age=age,
                    cola_income=cola / factor,
                    non_cola_income=non_cola / factor,
                    total_income=real_income,
                    core_expenses=core,
                    total_expenses=total,
                    coverage_pct=coverage,
                    total_coverage_pct=total_coverage,
                )
            )
        else:
            rows.append(
                IncomeProjectionRow(
                    age=age,
                    cola_income=cola,
                    non_cola_income=non_cola,
                    total_income=income,
                    core_expenses=core * factor,
                    total_expenses=total * factor,
                    coverage_pct=coverage,
                    total_coverage_pct=total_coverage,
                )
            )

    today = rows[0] if rows else None
    later = next(
        (r for r in rows if r.age == client_age + PROJECTION_CHECKPOINT_YEARS), None
    )
    full_coverage_age = next(
        (r.age for r in rows if r.coverage_pct is not None and r.coverage_pct >= 100), None
    )

    income_today = today.total_income if today else 0.0
    has_flat_lifetime_income = any(
        not s.inflation_adjusted and s.guaranteed_for_life and s.monthly_amount > 0
        for s in inputs.sources
    )

    logger.debug(
        f"Projected lifetime income for ages {client_age}-{terminal_age} ({view.value} view)"
    )

    return LifetimeIncomeProjection(
        rows=rows,
        view=view,
        core_coverage_today=today.coverage_pct if today else None,
        total_coverage_today=today.total_coverage_pct if today else None,
        coverage_in_20_years=later.coverage_pct if later else None,
        full_coverage_age=full_coverage_age,
        monthly_shortfall=max(0.0, core - income_today),
        monthly_surplus=max(0.0, income_today - core),
        purchasing_power_loss_20y=(
            purchasing_power_loss(inflation_rate) if has_flat_lifetime_income else 0.0
        ),
        inflation_rate=inflation_rate,
    )


def summarize_income_coverage(inputs: LifetimeIncomeInputs) -> IncomeCoverageSummary:
    """
    Compare lifetime-guaranteed income with today's expenses.

    Only sources guaranteed for life count, regardless of start age.
    """
    core = inputs.core_expenses_monthly
    total = inputs.total_expenses_monthly
    guaranteed = sum(s.monthly_amount for s in inputs.sources if s.guaranteed_for_life)

    return IncomeCoverageSummary(
        core_expenses_monthly=core,
        total_expenses_monthly=total,
        guaranteed_income_monthly=guaranteed,
        core_coverage_ratio=guaranteed / core if core > 0 else 0.0,
        total_coverage_ratio=guaranteed / total if total > 0 else 0.0,
        shortfall_monthly=max(0.0, core - guaranteed),
        surplus_monthly=max(0.0, guaranteed - core),
        needs_data_entry=not inputs.has_data,
    )
