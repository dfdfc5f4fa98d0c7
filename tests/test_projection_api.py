"""
Tests for the projection blueprint.
"""

import json

from phaseout import create_app
from phaseout.config import Settings
from phaseout.models.policy import DEFAULT_POLICY


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


class TestPolicyEndpoint:
    """Test GET /api/policy."""

    def test_default_policy(self, client):
        response = client.get("/api/policy")

        assert response.status_code == 200
        data = response.get_json()
        assert data["phase_out_year"] == 2025
        assert data["exemptions"]["2025"] == 0
        assert data["exemptions"]["2024"] == 100000
        assert data["rates"]["2027"]["net_income_rate"] == 0.056

    def test_policy_file(self, tmp_path, synthetic_policy):
        path = tmp_path / "policy.json"
        path.write_text(synthetic_policy.model_dump_json(), encoding="utf-8")
        settings = Settings(
            _env_file=None,
            SECRET_KEY="test-secret-key",
            APP_ENV="testing",
            POLICY_FILE=str(path),
        )
        client = create_app(settings).test_client()

        data = client.get("/api/policy").get_json()
        assert data["phase_out_year"] == 2032
        assert data["credit_rate"] == 0.5


class TestScenarioEndpoint:
    """Test POST /api/scenarios."""

    def test_run_scenario(self, client):
        response = post_json(
            client,
            "/api/scenarios",
            {"net_income": 500000, "gross_receipts": "$2,000,000", "start_year": 2020},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["shock_year"] == 2026
        assert data["gross_receipts"] == 2000000
        assert data["liabilities"]["2024"]["taxable_gross_receipts"] == 1900000
        assert data["liabilities"]["2024"]["statutory_deduction"] == 25000
        assert data["cash_flows"]["2026"]["is_grace_year"] is True
        assert data["cash_flows"]["2026"]["paid_in_year"] == 2026
        assert data["shock_type"] in ("cash", "working")

    def test_negative_income(self, client):
        response = post_json(
            client,
            "/api/scenarios",
            {"net_income": -5, "gross_receipts": 100000, "start_year": 2020},
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid request"

    def test_missing_fields(self, client):
        response = post_json(client, "/api/scenarios", {"net_income": 5})

        assert response.status_code == 400
        locations = [d["loc"] for d in response.get_json()["details"]]
        assert ["gross_receipts"] in locations
        assert ["start_year"] in locations

    def test_empty_body(self, client):
        response = client.post("/api/scenarios")
        assert response.status_code == 400


class TestShockSummaryEndpoint:
    """Test POST /api/shock-summary."""

    def test_small_filer(self, client):
        response = post_json(
            client,
            "/api/shock-summary",
            {"net_income": 30000, "gross_receipts": 80000, "start_year": 2020},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["shock_year"] == 2027
        assert set(data) == {
            "shock_year",
            "shock_amount",
            "shock_type",
            "cash_shock",
            "working_cash_shock",
            "shock_cash_burden",
            "prior_cash_burden",
        }

    def test_large_filer(self, client):
        response = post_json(
            client,
            "/api/shock-summary",
            {"net_income": 30000, "gross_receipts": 150000, "start_year": 2020},
        )
        assert response.get_json()["shock_year"] == 2026


class TestExplanationEndpoint:
    """Test POST /api/explanations."""

    def test_json(self, client):
        response = post_json(
            client,
            "/api/explanations",
            {"net_income": 500000, "gross_receipts": 2000000, "start_year": 2020},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert len(data["sections"]) == 6
        assert data["shock"]["shock_year"] == 2026

    def test_without_start_year(self, client):
        response = post_json(
            client, "/api/explanations", {"net_income": 500000, "gross_receipts": 2000000}
        )

        assert response.status_code == 200
        data = response.get_json()
        assert len(data["sections"]) == 3
        assert data["shock"] is None

    def test_text(self, client):
        response = post_json(
            client,
            "/api/explanations",
            {
                "net_income": "500,000",
                "gross_receipts": "2,000,000",
                "start_year": 2020,
                "format": "text",
            },
        )

        assert response.status_code == 200
        assert response.mimetype == "text/plain"
        assert "Shock Year Impact" in response.get_data(as_text=True)

    def test_year_outside_policy(self, client):
        response = post_json(
            client,
            "/api/explanations",
            {"net_income": 500000, "gross_receipts": 2000000, "year_with": 2019},
        )

        assert response.status_code == 422
        assert "2019" in response.get_json()["message"]


class TestShockGridEndpoint:
    """Test POST /api/shock-grid."""

    def test_grid(self, client):
        response = post_json(
            client,
            "/api/shock-grid",
            {
                "gross_receipts": [80000, "$150,000"],
                "net_margins": [0.1, 0.3],
                "start_year": 2020,
            },
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["gross_receipts"] == [80000.0, 150000.0]
        assert data["shock_years"] == [[2027, 2027], [2026, 2026]]

    def test_grid_too_large(self, tmp_path):
        settings = Settings(
            _env_file=None,
            SECRET_KEY="test-secret-key",
            APP_ENV="testing",
            MAX_GRID_SIZE=2,
        )
        client = create_app(settings).test_client()
        response = post_json(
            client,
            "/api/shock-grid",
            {"gross_receipts": [1, 2], "net_margins": [0.1, 0.2], "start_year": 2020},
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid input"

    def test_empty_lists(self, client):
        response = post_json(
            client,
            "/api/shock-grid",
            {"gross_receipts": [], "net_margins": [0.1], "start_year": 2020},
        )
        assert response.status_code == 400


def test_default_policy_is_not_modified(client):
    post_json(
        client,
        "/api/scenarios",
        {"net_income": 1, "gross_receipts": 1, "start_year": 2020},
    )
    assert DEFAULT_POLICY.phase_out_year == 2025
