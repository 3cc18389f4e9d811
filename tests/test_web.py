import pytest

from emi_calc_web.app import app

LOAN_QUERY = {"amt": "500000", "rate": "9.5", "ten": "20", "tt": "yr", "sd": "2025-01"}


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


class TestEmiEndpoint:
    def test_canonical_loan(self, client):
        resp = client.get("/api/emi", query_string=LOAN_QUERY)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["summary"]["periodic_payment"] == pytest.approx(4660.66, abs=0.01)
        assert data["summary"]["truncated"] == 120
        assert len(data["schedule"]) == 120
        assert data["schedule"][0]["date"] == "2025-01"

    def test_full_schedule(self, client):
        resp = client.get("/api/emi", query_string={**LOAN_QUERY, "full": "1"})
        data = resp.get_json()
        assert len(data["schedule"]) == 240
        assert "truncated" not in data["summary"]

    def test_defaults_when_fields_missing(self, client):
        data = client.get("/api/emi").get_json()
        assert data["summary"]["principal"] == 500000
        assert data["summary"]["tenure_months"] == 240

    def test_share_url_round_trips_parameters(self, client):
        data = client.get("/api/emi", query_string={**LOAN_QUERY, "curr": "inr"}).get_json()
        assert "amt=500000" in data["share_url"]
        assert "curr=INR" in data["share_url"]
        assert data["currency"]["code"] == "INR"

    def test_currency_from_accept_language(self, client):
        resp = client.get("/api/emi", query_string=LOAN_QUERY, headers={"Accept-Language": "en-GB,en;q=0.8"})
        assert resp.get_json()["currency"]["code"] == "GBP"

    def test_malformed_rate_coerced_to_zero(self, client):
        resp = client.get("/api/emi", query_string={**LOAN_QUERY, "rate": "abc"})
        assert resp.status_code == 200
        assert resp.get_json()["summary"]["total_interest"] == 0

    def test_negative_principal_rejected(self, client):
        resp = client.get("/api/emi", query_string={**LOAN_QUERY, "amt": "-5"})
        assert resp.status_code == 400
        assert "Principal" in resp.get_json()["error"]

    def test_overflowing_rate_rejected(self, client):
        resp = client.get("/api/emi", query_string={"amt": "1000", "rate": "1e3000", "ten": "50"})
        assert resp.status_code == 400
        assert "too large" in resp.get_json()["error"]

    def test_unknown_moratorium_mode_rejected(self, client):
        resp = client.get("/api/emi", query_string={**LOAN_QUERY, "mor": "3", "mm": "defer"})
        assert resp.status_code == 400

    def test_post_with_custom_prepayments(self, client):
        body = {
            "amt": 100000,
            "rate": 10,
            "ten": 12,
            "tt": "mo",
            "pf": "custom",
            "cp": [{"month": 3, "amount": 20000}, {"month": 3, "amount": 5000}],
        }
        data = client.post("/api/emi", json=body).get_json()
        assert data["summary"]["total_prepaid"] == 25000
        assert data["summary"]["months_saved"] > 0

    def test_post_requires_json_object(self, client):
        resp = client.post("/api/emi", data="not json", content_type="text/plain")
        assert resp.status_code == 400


class TestScheduleCsv:
    def test_download(self, client):
        resp = client.get("/api/emi/schedule.csv", query_string={**LOAN_QUERY, "mor": "3"})
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]
        lines = resp.get_data(as_text=True).splitlines()
        assert lines[0] == "Month,Date,Principal,Interest,Total Payment,Balance"
        assert len(lines) == 241
        assert lines[1].startswith("1,2025-01,0.00,")


class TestCompareEndpoint:
    def test_default_offers(self, client):
        data = client.post("/api/compare", json={}).get_json()
        assert data["better"] == "loan2"
        assert data["interest_savings"] == pytest.approx(
            data["loan1"]["total_interest"] - data["loan2"]["total_interest"]
        )

    def test_first_offer_cheaper(self, client):
        body = {"loan1": {"amount": 500000, "rate": 7, "tenure": 20}, "loan2": {"amount": 500000, "rate": 8, "tenure": 20}}
        assert client.post("/api/compare", json=body).get_json()["better"] == "loan1"


class TestEligibilityEndpoint:
    def test_zero_rate(self, client):
        resp = client.get(
            "/api/eligibility", query_string={"income": "50000", "existing_emi": "5000", "rate": "0", "tenure": "10"}
        )
        assert resp.status_code == 200
        assert resp.get_json()["max_loan_amount"] == 2400000

    def test_overflowing_rate_rejected(self, client):
        resp = client.get("/api/eligibility", query_string={"rate": "1e3000", "tenure": "50"})
        assert resp.status_code == 400

    def test_bad_foir_rejected(self, client):
        resp = client.get("/api/eligibility", query_string={"foir": "150"})
        assert resp.status_code == 400


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}
