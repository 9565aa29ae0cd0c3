from __future__ import annotations

from datetime import date

from playcode.domain.leads import (
    GamingLead,
    calculate_lead_score,
    close_date,
    deal_amount,
    deal_stage_for_level,
    round_half_up,
)


class TestLeadScore:
    def test_base_points_for_small_website(self):
        assert calculate_lead_score("website", "startup") == 100

    def test_budget_bonus_and_urgency(self):
        # (800 * 3.0 + 200) * 1.3
        assert calculate_lead_score("ai", "large", company="Acme", urgency="high") == 3380

    def test_contact_bonuses(self):
        message = "x" * 101
        assert calculate_lead_score("website", "startup", company="Acme", phone="11999999999", message=message) == 550

    def test_message_bonus_needs_more_than_100_chars(self):
        assert calculate_lead_score("website", "startup", message="x" * 100) == 100

    def test_blank_company_is_not_a_bonus(self):
        assert calculate_lead_score("website", "startup", company="   ") == 100

    def test_unknown_project_scores_only_bonuses(self):
        assert calculate_lead_score("blockchain", None, phone="123") == 150

    def test_unknown_budget_leaves_points(self):
        assert calculate_lead_score("mobile", "galactic") == 500

    def test_low_urgency_reduces_score(self):
        assert calculate_lead_score("website", "startup", urgency="low") == 80

    def test_critical_urgency(self):
        assert calculate_lead_score("custom", "custom", urgency="critical") == 3750


def test_round_half_up_rounds_away_from_banker_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_deal_amount():
    assert deal_amount("medium", "ai", "critical") == 260000
    assert deal_amount("startup", "website", "high") == 9200
    assert deal_amount(None, None, None) == 50000
    assert deal_amount("large", "unknown", "normal") == 200000


def test_close_date_by_urgency():
    today = date(2024, 1, 1)
    assert close_date("critical", today) == "2024-01-08"
    assert close_date("high", today) == "2024-01-15"
    assert close_date("low", today) == "2024-03-01"
    assert close_date(None, today) == "2024-01-31"


def test_deal_stage_for_level():
    assert deal_stage_for_level("achievement_unlocked") == "closedwon"
    assert deal_stage_for_level("new_player") == "qualifiedtobuy"
    assert deal_stage_for_level("nobody") == "qualifiedtobuy"


def test_lead_to_dict_uses_api_field_names():
    lead = GamingLead(email="ana@example.com", name="Ana", lead_score=300, power_ups=["seo-boost"])
    data = lead.to_dict()
    assert data["email"] == "ana@example.com"
    assert data["leadScore"] == 300
    assert data["playerLevel"] == "new_player"
    assert data["powerUps"] == ["seo-boost"]
    assert data["lastSyncAt"] is None
    assert data["id"].startswith("lead_")
