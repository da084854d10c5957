"""Tests for the lifetime income coverage model."""

import pytest

from core.lifetime_income import (
    GuaranteedIncomeSource,
    IncomeSourceType,
    LifetimeIncomeInputs,
    ProjectionView,
    project_lifetime_income,
    purchasing_power_loss,
    summarize_income_coverage,
)

INFLATION = 0.025


@pytest.fixture
def fully_covered() -> LifetimeIncomeInputs:
    """Two COLA lifetime sources starting today exactly cover core expenses."""
    return LifetimeIncomeInputs(
        core_expenses_monthly=6_000.0,
        sources=(
            GuaranteedIncomeSource("Client SS", 3_000.0, 65, inflation_adjusted=True),
            GuaranteedIncomeSource("Spouse SS", 3_000.0, 65, inflation_adjusted=True),
        ),
    )


class TestProjectLifetimeIncome:
    """Tests for the year-by-year projection."""

    def test_cola_sources_cover_today(self, fully_covered):
        projection = project_lifetime_income(fully_covered, 65, INFLATION)
        assert projection.core_coverage_today == pytest.approx(100.0)
        assert projection.full_coverage_age == 65
        assert projection.monthly_shortfall == pytest.approx(0.0)

    def test_rows_span_to_terminal_age(self, fully_covered):
        projection = project_lifetime_income(fully_covered, 65, INFLATION)
        assert [r.age for r in projection.rows] == list(range(65, 96))
        assert projection.row_at(95) is not None
        assert projection.row_at(96) is None

    def test_cola_coverage_stays_constant(self, fully_covered):
        projection = project_lifetime_income(fully_covered, 65, INFLATION)
        assert projection.coverage_in_20_years == pytest.approx(100.0)

    def test_flat_income_erodes(self, short_income):
        projection = project_lifetime_income(short_income, 65, INFLATION)
        assert projection.core_coverage_today == pytest.approx(50.0)
        assert projection.coverage_in_20_years == pytest.approx(50.0 / 1.025**20)
        assert projection.purchasing_power_loss_20y == pytest.approx(purchasing_power_loss(INFLATION))
        assert projection.monthly_shortfall == pytest.approx(3_000.0)

    def test_sources_start_at_their_own_age(self, covered_income):
        projection = project_lifetime_income(covered_income, 60, INFLATION)
        assert projection.row_at(64).total_income == 0.0
        assert projection.row_at(65).non_cola_income == 1_500.0
        assert projection.row_at(66).cola_income == 0.0
        # COLA compounds from the source's own start age
        assert projection.row_at(69).cola_income == pytest.approx(3_000.0 * 1.025**2)

    def test_coverage_never_reached(self, covered_income):
        projection = project_lifetime_income(covered_income, 60, INFLATION)
        assert projection.full_coverage_age is None

    def test_nominal_and_real_coverage_match(self, covered_income):
        nominal = project_lifetime_income(covered_income, 60, INFLATION, view=ProjectionView.NOMINAL)
        real = project_lifetime_income(covered_income, 60, INFLATION, view=ProjectionView.REAL)
        for n_row, r_row in zip(nominal.rows, real.rows):
            assert n_row.coverage_pct == pytest.approx(r_row.coverage_pct)
            assert n_row.total_coverage_pct == pytest.approx(r_row.total_coverage_pct)

    def test_views_differ_in_dollar_basis(self, covered_income):
        nominal = project_lifetime_income(covered_income, 60, INFLATION, view=ProjectionView.NOMINAL)
        real = project_lifetime_income(covered_income, 60, INFLATION, view=ProjectionView.REAL)
        assert nominal.row_at(70).core_expenses == pytest.approx(4_000.0 * 1.025**10)
        assert real.row_at(70).core_expenses == 4_000.0
        assert real.row_at(70).total_income == pytest.approx(nominal.row_at(70).total_income / 1.025**10)

    def test_no_core_expenses_gives_none_coverage(self):
        inputs = LifetimeIncomeInputs(sources=(GuaranteedIncomeSource("Pension", 1_000.0, 60),))
        projection = project_lifetime_income(inputs, 65, INFLATION)
        assert projection.core_coverage_today is None
        assert projection.full_coverage_age is None

    def test_no_flat_lifetime_income_means_no_purchasing_power_loss(self, fully_covered):
        projection = project_lifetime_income(fully_covered, 65, INFLATION)
        assert projection.purchasing_power_loss_20y == 0.0

    def test_past_terminal_age(self, fully_covered):
        projection = project_lifetime_income(fully_covered, 100, INFLATION)
        assert projection.rows == []
        assert projection.core_coverage_today is None


class TestSummarizeIncomeCoverage:
    """Tests for the static coverage snapshot."""

    def test_covered(self, covered_income):
        summary = summarize_income_coverage(covered_income)
        assert summary.guaranteed_income_monthly == 4_500.0
        assert summary.core_coverage_ratio == pytest.approx(4_500 / 4_000)
        assert summary.total_coverage_ratio == pytest.approx(4_500 / 6_000)
        assert summary.surplus_monthly == 500.0
        assert not summary.needs_data_entry

    def test_term_certain_sources_excluded(self):
        inputs = LifetimeIncomeInputs(
            core_expenses_monthly=2_000.0,
            sources=(
                GuaranteedIncomeSource("Annuity", 1_000.0, 65, guaranteed_for_life=False),
                GuaranteedIncomeSource("Pension", 500.0, 65),
            ),
        )
        summary = summarize_income_coverage(inputs)
        assert summary.guaranteed_income_monthly == 500.0
        assert summary.shortfall_monthly == 1_500.0

    def test_empty_inputs_need_data(self):
        summary = summarize_income_coverage(LifetimeIncomeInputs())
        assert summary.needs_data_entry
        assert summary.core_coverage_ratio == 0.0


class TestSourceLabels:
    def test_display_name_falls_back_to_type(self):
        source = GuaranteedIncomeSource("", 100.0, 65, source_type=IncomeSourceType.PENSION_SPOUSE)
        assert source.display_name == "Pension (Spouse)"

    def test_purchasing_power_loss(self):
        assert purchasing_power_loss(0.03, 20) == pytest.approx(1 - 1.03**-20)
