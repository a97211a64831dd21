"""
Dashboard metrics for Ignition.

Computes coverage, completeness and health percentages from ProjectData.
All percentages are integers rounded half-up; an empty denominator gives 0.
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from ignition.constants import DOC_SECTION_MIN_LENGTH
from ignition.models.entities import RiskLevel, RiskStatus, TestStatus
from ignition.models.project import ProjectData
from ignition.utils import percentage, round_half_up


class DashboardMetrics(BaseModel):
    project_health: int = 0
    doc_completeness: int = 0
    req_test_coverage: int = 0
    req_ci_coverage: int = 0
    test_pass_rate: int = 0
    open_risks: int = 0
    total_requirements: int = 0
    total_test_cases: int = 0
    total_risks: int = 0
    total_configuration_items: int = 0
    total_process_assets: int = 0
    total_audit_entries: int = 0
    risk_heat_map: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class TraceabilityRow(BaseModel):
    requirement_id: str
    description: str
    status: str
    tests: List[str] = Field(default_factory=list)
    cis: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    issues: List[int] = Field(default_factory=list)


class MetricsTracker:
    """Calculates dashboard metrics for a project."""

    def __init__(self, project: ProjectData) -> None:
        self.project = project

    def _ratio_parts(self) -> Dict[str, tuple]:
        project = self.project
        requirements = project.requirements
        with_tests = sum(
            1 for r in requirements if project.links.get(r.id) and project.links[r.id].tests
        )
        with_cis = sum(
            1 for r in requirements if project.links.get(r.id) and project.links[r.id].cis
        )

        sections = [s for doc in project.documents.values() for s in doc.sections()]
        complete = sum(
            1 for s in sections if len(s.description.strip()) > DOC_SECTION_MIN_LENGTH
        )

        passed = sum(1 for t in project.test_cases if t.status == TestStatus.PASSED)

        return {
            "doc": (complete, len(sections)),
            "req_test": (with_tests, len(requirements)),
            "req_ci": (with_cis, len(requirements)),
            "test_pass": (passed, len(project.test_cases)),
        }

    def risk_heat_map(self) -> Dict[str, Dict[str, int]]:
        """Count risks by probability then impact (open and closed alike)."""
        levels = [level.value for level in RiskLevel]
        heat = {p: {i: 0 for i in levels} for p in levels}
        for risk in self.project.risks:
            heat[RiskLevel(risk.probability).value][RiskLevel(risk.impact).value] += 1
        return heat

    def calculate(self) -> DashboardMetrics:
        """
        Calculate all dashboard metrics.

        Project health is the mean of the four ratios (document
        completeness, requirement test coverage, requirement CI coverage
        and test pass rate), each as a fraction, times 100.
        """
        parts = self._ratio_parts()
        ratios = [part / total if total else 0.0 for part, total in parts.values()]
        health_scaled = sum(ratios) / len(ratios) * 100
        project = self.project

        return DashboardMetrics(
            project_health=round_half_up(health_scaled),
            doc_completeness=percentage(*parts["doc"]),
            req_test_coverage=percentage(*parts["req_test"]),
            req_ci_coverage=percentage(*parts["req_ci"]),
            test_pass_rate=percentage(*parts["test_pass"]),
            open_risks=sum(1 for r in project.risks if r.status == RiskStatus.OPEN),
            total_requirements=len(project.requirements),
            total_test_cases=len(project.test_cases),
            total_risks=len(project.risks),
            total_configuration_items=len(project.configuration_items),
            total_process_assets=len(project.process_assets),
            total_audit_entries=len(project.audit_log),
            risk_heat_map=self.risk_heat_map(),
        )

    def traceability_matrix(self) -> List[TraceabilityRow]:
        """One row per requirement with everything linked to it."""
        rows = []
        for requirement in self.project.requirements:
            links = self.project.links.get(requirement.id)
            rows.append(TraceabilityRow(
                requirement_id=requirement.id,
                description=requirement.description,
                status=requirement.status.value,
                tests=list(links.tests) if links else [],
                cis=list(links.cis) if links else [],
                risks=list(links.risks) if links else [],
                issues=list(links.issues) if links else [],
            ))
        return rows
