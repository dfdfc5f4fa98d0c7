"""
Tests for the cash-flow calculator.

The grace-year rules interact through the business start year, the first
year's liability and the exemption schedule, so they are covered with a
table of start years and income profiles in addition to worked examples.
"""

import pytest

from phaseout.models.cash_flow import (
    CashFlow,
    GraceStatus,
    compute_cash_flow,
    determine_grace,
    zero_cash_flow,
)
from phaseout.models.liability import compute_liability
from phaseout.models.policy import DEFAULT_POLICY
from phaseout.models.scenario import project_liabilities
from phaseout.models.time_grid import TimeGrid

ANALYSIS = DEFAULT_POLICY.analysis_window
EXPLANATION = DEFAULT_POLICY.explanation_window


def liabilities_for(net_income, gross_receipts, start_year, window=ANALYSIS):
    return project_liabilities(
        net_income, gross_receipts, start_year, window, DEFAULT_POLICY
    )


class TestZeroCashFlow:
    """Test filings with nothing to report."""

    def test_no_prior_liability(self):
        cash_flow = compute_cash_flow({}, 2022, 2020)

        assert cash_flow == zero_cash_flow(2022)
        assert cash_flow.total_cash_burden == 0.0
        assert cash_flow.is_grace_year is False
        assert cash_flow.paid_in_year == 2022

    def test_business_did_not_exist_prior_year(self):
        liabilities = liabilities_for(200000, 1000000, 2025)
        cash_flow = compute_cash_flow(liabilities, 2025, 2025)

        assert cash_flow.tax_due == 0.0
        assert cash_flow.est_first_tax == 0.0
        assert cash_flow.est_profits_tax == 0.0
        assert cash_flow.adjustment == 0.0
        assert cash_flow.total_cash_burden == 0.0


class TestFirstYearFilingGrace:
    """Business started in 2025 with first tax owed in its first year."""

    @pytest.fixture
    def liabilities(self):
        return liabilities_for(200000, 1000000, 2025)

    def test_first_filing_waives_estimated_first_tax(self, liabilities):
        cash_flow = compute_cash_flow(liabilities, 2026, 2025)

        assert liabilities[2025].first_tax_total == pytest.approx(12830)
        assert cash_flow.first_year_grace is True
        assert cash_flow.exemption_removal_grace is False
        assert cash_flow.is_grace_year is True
        assert cash_flow.tax_due == pytest.approx(13458)
        assert cash_flow.est_first_tax == 0.0
        assert cash_flow.est_profits_tax == pytest.approx(314)
        assert cash_flow.adjustment == 0.0
        assert cash_flow.total_cash_burden == pytest.approx(13772)

    def test_second_filing_credits_back_first_filing_estimates(self, liabilities):
        cash_flow = compute_cash_flow(liabilities, 2027, 2025)
        expected_adjustment = -(
            0 + 0.5 * liabilities[2025].profits_tax_after_credit
        )

        assert cash_flow.is_grace_year is False
        assert cash_flow.tax_due == pytest.approx(13385)
        assert cash_flow.est_first_tax == pytest.approx(12695)
        assert cash_flow.est_profits_tax == pytest.approx(345)
        assert cash_flow.adjustment == pytest.approx(expected_adjustment)
        assert cash_flow.adjustment == pytest.approx(-314)
        assert cash_flow.total_cash_burden == pytest.approx(26111)


class TestExemptionRemovalGrace:
    """Small business from 2020 that never owed first tax under the exemption."""

    @pytest.fixture
    def cash_flows(self):
        liabilities = liabilities_for(30000, 60000, 2020)
        return {
            year: compute_cash_flow(liabilities, year, 2020)
            for year in ANALYSIS.get_cash_flow_years()
        }

    def test_grace_applies_exactly_once(self, cash_flows):
        grace_years = [year for year, cf in cash_flows.items() if cf.is_grace_year]

        assert grace_years == [2026]
        assert cash_flows[2026].exemption_removal_grace is True
        assert cash_flows[2026].first_year_grace is False
        assert cash_flows[2027].is_grace_year is False

    def test_grace_year_figures(self, cash_flows):
        cash_flow = cash_flows[2026]

        assert cash_flow.tax_due == pytest.approx(1891.8)
        assert cash_flow.est_first_tax == 0.0
        assert cash_flow.est_profits_tax == pytest.approx(47.1)
        assert cash_flow.adjustment == pytest.approx(-562.5)
        assert cash_flow.total_cash_burden == pytest.approx(1376.4)

    def test_year_after_grace_pays_full_estimate(self, cash_flows):
        cash_flow = cash_flows[2027]

        assert cash_flow.est_first_tax == pytest.approx(1778.7)
        assert cash_flow.est_profits_tax == pytest.approx(51.75)
        # Prior filing was the grace year, so only its profits estimate comes back
        assert cash_flow.adjustment == pytest.approx(-47.1)
        assert cash_flow.total_cash_burden == pytest.approx(3665.55)


class TestGraceTable:
    """Table-driven coverage of both grace rules and their precedence."""

    @pytest.mark.parametrize(
        "start_year, net_income, gross_receipts, filing_year, expected",
        [
            # First-year grace wins over the removal grace in the same filing
            (2025, 200000, 1000000, 2026, (True, False)),
            (2025, 200000, 1000000, 2027, (False, False)),
            (2026, 200000, 1000000, 2027, (True, False)),
            # Never paid first tax under the exemption
            (2020, 30000, 60000, 2025, (False, False)),
            (2020, 30000, 60000, 2026, (False, True)),
            (2020, 30000, 60000, 2027, (False, False)),
            (2023, 30000, 60000, 2024, (False, False)),
            (2023, 30000, 60000, 2026, (False, True)),
            # No first tax in the first year means no first-year grace
            (2025, 0, 0, 2026, (False, True)),
            # Paid first tax while the exemption applied
            (2023, 500000, 2000000, 2024, (True, False)),
            (2023, 500000, 2000000, 2026, (False, False)),
            (2021, 500000, 2000000, 2026, (False, False)),
            # Start year before the window: first-year liability is unknown
            (2020, 500000, 2000000, 2026, (False, True)),
            (2015, 500000, 2000000, 2026, (False, True)),
        ],
    )
    def test_grace_rules(
        self, start_year, net_income, gross_receipts, filing_year, expected
    ):
        liabilities = liabilities_for(net_income, gross_receipts, start_year)
        grace = determine_grace(liabilities, filing_year, start_year, DEFAULT_POLICY)

        assert grace == GraceStatus(*expected)
        cash_flow = compute_cash_flow(liabilities, filing_year, start_year)
        assert cash_flow.first_year_grace is expected[0]
        assert cash_flow.exemption_removal_grace is expected[1]
        if any(expected):
            assert cash_flow.est_first_tax == 0.0

    def test_flags_never_both_set(self):
        for start_year in range(2015, 2028):
            for gross_receipts in (0, 60000, 100000, 150000, 2000000):
                liabilities = liabilities_for(
                    gross_receipts * 0.2, gross_receipts, start_year
                )
                for year in ANALYSIS.get_cash_flow_years():
                    cash_flow = compute_cash_flow(liabilities, year, start_year)
                    assert not (
                        cash_flow.first_year_grace and cash_flow.exemption_removal_grace
                    )

    def test_wider_window_sees_first_year_payment(self):
        """With 2020 in view, a 2020 business that paid first tax gets no removal grace."""
        liabilities = liabilities_for(500000, 2000000, 2020, window=EXPLANATION)
        cash_flow = compute_cash_flow(liabilities, 2026, 2020)

        assert cash_flow.is_grace_year is False
        assert cash_flow.est_first_tax == pytest.approx(liabilities[2025].first_tax_total)


class TestCashFlowDependencies:
    """Cash flow for year Y only looks backwards."""

    def test_current_and_later_liabilities_are_ignored(self):
        liabilities = liabilities_for(200000, 1000000, 2022)
        before = compute_cash_flow(liabilities, 2026, 2022)

        altered = dict(liabilities)
        altered[2026] = compute_liability(9e6, 9e7, 2026, True)
        altered[2027] = compute_liability(9e6, 9e7, 2027, True)
        after = compute_cash_flow(altered, 2026, 2022)

        assert after == before

    def test_adjustment_matches_prior_filing_estimates(self):
        liabilities = liabilities_for(250000, 800000, 2021)
        for year in range(2023, 2028):
            prior = compute_cash_flow(liabilities, year - 1, 2021)
            current = compute_cash_flow(liabilities, year, 2021)
            assert current.adjustment == pytest.approx(
                -(prior.est_first_tax + prior.est_profits_tax)
            )

    def test_total_is_sum_of_components(self):
        liabilities = liabilities_for(250000, 800000, 2021)
        cash_flow = compute_cash_flow(liabilities, 2025, 2021)

        assert isinstance(cash_flow, CashFlow)
        assert cash_flow.total_cash_burden == pytest.approx(
            cash_flow.tax_due
            + cash_flow.est_first_tax
            + cash_flow.est_profits_tax
            + cash_flow.adjustment
        )


class TestInjectedPolicy:
    """Estimate rate and exemption schedule come from the policy."""

    def test_synthetic_schedule(self, synthetic_policy):
        window = TimeGrid(start_year=2031, end_year=2034)
        liabilities = project_liabilities(100000, 200000, 2030, window, synthetic_policy)
        cash_flow = compute_cash_flow(liabilities, 2033, 2030, synthetic_policy)

        assert cash_flow.exemption_removal_grace is True
        assert cash_flow.tax_due == pytest.approx(5900)
        assert cash_flow.est_first_tax == 0.0
        assert cash_flow.est_profits_tax == pytest.approx(125)
        assert cash_flow.adjustment == pytest.approx(-4331.25)
        assert cash_flow.total_cash_burden == pytest.approx(1693.75)
