"""Tests for the industry rule catalog and the rules query endpoint."""

import pytest

from dresscode.errors import UnknownIndustry
from dresscode.rules import catalog, rules_for
from dresscode.rules.base import IndustryRules, register
from dresscode.schemas.schemas import IndustryType


class TestCatalog:
    def test_every_industry_is_registered(self):
        assert set(catalog()) == set(IndustryType)

    def test_rules_for_accepts_enum_and_string(self):
        assert rules_for(IndustryType.HEALTHCARE) is rules_for("healthcare")

    def test_healthcare_rules(self):
        rules = rules_for(IndustryType.HEALTHCARE)
        assert "ID badge" in rules.required_items
        assert "open-toed shoes" in rules.prohibited_items
        assert "footwear" in rules.remediation

    def test_construction_rules(self):
        rules = rules_for(IndustryType.CONSTRUCTION)
        assert "hard hat" in rules.required_items
        assert "loose clothing" in rules.prohibited_items
        assert rules.recognition_guidance

    def test_unknown_industry_raises(self):
        with pytest.raises(UnknownIndustry):
            rules_for("aviation")

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            catalog()[IndustryType.HEALTHCARE] = None  # type: ignore[index]

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError):
            register(IndustryRules(
                industry=IndustryType.HEALTHCARE,
                display_name="Duplicate",
                required_items=(),
                prohibited_items=(),
            ))

    def test_as_dict_uses_wire_names(self):
        data = rules_for("construction").as_dict()
        assert set(data) == {"requiredItems", "prohibitedItems"}
        assert isinstance(data["requiredItems"], list)


@pytest.mark.asyncio
class TestRulesEndpoint:
    async def test_get_rules(self, api_client):
        resp = await api_client.get("/api/compliance-rules/healthcare")
        assert resp.status_code == 200
        body = resp.json()
        assert body["requiredItems"] == list(rules_for("healthcare").required_items)
        assert body["prohibitedItems"] == list(rules_for("healthcare").prohibited_items)

    async def test_unknown_industry_is_400(self, api_client):
        resp = await api_client.get("/api/compliance-rules/aviation")
        assert resp.status_code == 400
        assert "message" in resp.json()
