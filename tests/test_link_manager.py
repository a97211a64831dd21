"""
Tests for LinkManager.

Tests cover:
- Replacement semantics of every link setter
- Referential integrity (unknown ids are rejected)
- Asset usage tracking
- Dangling reference detection
"""

import pytest

from ignition.exceptions import NotFoundError, ValidationError
from ignition.managers.audit_manager import AuditRecorder
from ignition.managers.link_manager import LinkManager
from ignition.models.project import AssetLinks, RequirementLinks


@pytest.fixture
def links(sample_project, event_bus):
    event_bus.subscribe(AuditRecorder(sample_project, event_bus))
    return LinkManager(sample_project, event_bus)


class TestRequirementLinks:
    def test_set_and_get(self, links):
        row = links.set_requirement_links("REQ-1", tests=["TC-1"], cis=["CI-1"], issues=[3, 3])
        assert row.tests == ["TC-1"]
        assert row.cis == ["CI-1"]
        assert row.issues == [3]
        assert links.get_requirement_links("REQ-1") is row

    def test_none_leaves_list_unchanged(self, links):
        links.set_requirement_links("REQ-1", tests=["TC-1"])
        row = links.set_requirement_links("REQ-1", cis=["CI-1"])
        assert row.tests == ["TC-1"]

    def test_empty_list_clears(self, links):
        links.set_requirement_links("REQ-1", tests=["TC-1"])
        assert links.set_requirement_links("REQ-1", tests=[]).tests == []

    def test_unknown_test_rejected(self, links, sample_project):
        with pytest.raises(NotFoundError, match="TC-9"):
            links.set_requirement_links("REQ-1", tests=["TC-9"])
        assert "REQ-1" not in sample_project.links or sample_project.links["REQ-1"].tests == []

    def test_unknown_requirement(self, links):
        with pytest.raises(NotFoundError):
            links.get_requirement_links("REQ-9")

    def test_non_positive_issue(self, links):
        with pytest.raises(ValidationError):
            links.set_requirement_links("REQ-1", issues=[0])

    def test_records_link_update(self, links, sample_project):
        links.set_requirement_links("REQ-1", tests=["TC-1"])
        entry = sample_project.audit_log[-1]
        assert entry.event_type == "REQUIREMENT_LINK_UPDATE"
        assert entry.details["after"]["tests"] == ["TC-1"]


class TestRiskLinks:
    def test_replaces_requirement_rows(self, links, sample_project):
        links.set_risk_links("RISK-1", requirements=["REQ-1"])
        reqs, cis = links.set_risk_links("RISK-1", requirements=["REQ-2"], cis=["CI-1"])
        assert reqs == ["REQ-2"]
        assert cis == ["CI-1"]
        assert sample_project.links["REQ-1"].risks == []
        assert sample_project.links["REQ-2"].risks == ["RISK-1"]
        assert sample_project.risk_ci_links == {"RISK-1": ["CI-1"]}

    def test_clearing_cis_removes_key(self, links, sample_project):
        links.set_risk_links("RISK-1", cis=["CI-1"])
        links.set_risk_links("RISK-1", cis=[])
        assert "RISK-1" not in sample_project.risk_ci_links

    def test_audit_prefix(self, links, sample_project):
        links.set_risk_links("RISK-1", requirements=["REQ-1"])
        assert sample_project.audit_log[-1].event_type == "RISK_LINK_UPDATE"


class TestIssueLinks:
    def test_set_issue_links(self, links, sample_project):
        linked = links.set_issue_links(12, requirements=["REQ-1"], cis=["CI-1"], risks=["RISK-1"])
        assert linked == {"requirements": ["REQ-1"], "cis": ["CI-1"], "risks": ["RISK-1"]}
        assert sample_project.links["REQ-1"].issues == [12]
        assert sample_project.audit_log[-1].event_type == "ISSUE_LINK_UPDATE"

    def test_moves_issue_between_requirements(self, links, sample_project):
        links.set_issue_links(12, requirements=["REQ-1"])
        links.set_issue_links(12, requirements=["REQ-2"])
        assert sample_project.links["REQ-1"].issues == []
        assert sample_project.links["REQ-2"].issues == [12]

    def test_invalid_issue_number(self, links):
        with pytest.raises(ValidationError):
            links.set_issue_links(-1, requirements=["REQ-1"])


class TestAssets:
    def test_set_asset_links(self, links):
        row = links.set_asset_links("PA-1", requirements=["REQ-1"], risks=["RISK-1"])
        assert row.requirements == ["REQ-1"]
        assert row.risks == ["RISK-1"]
        assert row.cis == []

    def test_record_usage(self, links, sample_project):
        links.record_asset_usage("PA-1", "requirement", "REQ-1")
        usage = links.record_asset_usage("PA-1", "test", "TC-1")
        assert usage.usage_count == 2
        assert [(g.type, g.id) for g in usage.generated_items] == [("requirement", "REQ-1"), ("test", "TC-1")]
        entry = sample_project.audit_log[-1]
        assert entry.event_type == "ASSET_USAGE"
        assert entry.details["usageCount"] == 2

    def test_usage_requires_generated_item(self, links):
        with pytest.raises(NotFoundError):
            links.record_asset_usage("PA-1", "test", "TC-404")


class TestIntegrity:
    def test_remove_entity_counts_references(self, links, sample_project):
        links.set_requirement_links("REQ-1", tests=["TC-1"])
        links.set_requirement_links("REQ-2", tests=["TC-1"])
        assert links.remove_entity("TC-1") == 2
        assert sample_project.links["REQ-2"].tests == []

    def test_dangling_references(self, links, sample_project):
        sample_project.links["REQ-1"] = RequirementLinks(tests=["TC-GONE"])
        sample_project.asset_links["PA-GONE"] = AssetLinks()
        sample_project.issue_risk_links[4] = ["RISK-GONE"]
        dangling = links.dangling_references()
        assert ("links", "REQ-1", "TC-GONE") in dangling
        assert ("assetLinks", "PA-GONE", "PA-GONE") in dangling
        assert ("issueRiskLinks", "4", "RISK-GONE") in dangling
