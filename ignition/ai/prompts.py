"""
Prompt templates for the Gemini-backed AI features.
"""

import json
from typing import List, Optional

from ignition.constants import AI_SYSTEM_INSTRUCTION
from ignition.models.entities import Requirement
from ignition.models.github import PullRequest, PullRequestFile
from ignition.models.project import Document, ProjectData

SYSTEM_INSTRUCTION = AI_SYSTEM_INSTRUCTION

_RAW_JSON = "Do not include any other text, explanations, or markdown code fences."


def project_context_summary(project: ProjectData) -> str:
    """Short overview of the project used as context in most prompts."""
    doc_lines = []
    for doc in project.documents.values():
        sections = ", ".join(section.title for section in doc.content)
        doc_lines.append(
            f"- {doc.title}: Contains sections like {sections}. Some content may already exist."
        )
    priorities = []
    for requirement in project.requirements:
        if requirement.priority.value not in priorities:
            priorities.append(requirement.priority.value)
    requirement_summary = (
        f"There are {len(project.requirements)} requirements defined. "
        f"Priorities are: {', '.join(priorities)}."
    )
    return (
        f"PROJECT NAME: {project.project_name}\n\n"
        f"DOCUMENTATION OVERVIEW:\n" + "\n".join(doc_lines) + "\n\n"
        f"REQUIREMENTS OVERVIEW:\n{requirement_summary}"
    )


def improve_content(text: str) -> str:
    return (
        "Improve the following text for clarity, completeness, and professional "
        f"tone, while keeping it concise: \n\n---\n{text}\n---"
    )


def document_section(document_title: str, section_title: str, context: str) -> str:
    return f"""You are a world-class CMMI consultant and technical writer named Ignition AI.
Your task is to generate the content for a specific section of a project document.
Based on the following overall project context, write the content for the section: "{section_title}" within the document: "{document_title}".

The content should be professional, comprehensive, and align with best practices for software project documentation.
Generate *only* the text for the section description. Do not include the section title, markdown headings, or any other surrounding text or explanation.

---
PROJECT CONTEXT:
{context}
---
"""


def _document_snippets(document: Optional[Document]) -> str:
    if document is None:
        return "Not available."
    return "\n".join(f"{s.title}: {s.description}" for s in document.content)


def requirement_suggestion(project: ProjectData) -> str:
    existing_ids = ", ".join(r.id for r in project.requirements) or "None"
    docs = project.documents
    return f"""DOCUMENTATION CONTEXT:
---
Software Development Plan (SDP) Snippets:
{_document_snippets(docs.get('sdp'))}
---
Software Requirements Specification (SRS) Snippets:
{_document_snippets(docs.get('srs'))}
---
Configuration Management (CM) Plan Snippets:
{_document_snippets(docs.get('cm_plan'))}
---
EXISTING REQUIREMENT IDs:
{existing_ids}
---
TASK:
You are an expert requirements analyst. Based on the provided documentation context and the list of existing requirements, suggest details for a NEW requirement.
1. ID Suggestion: Analyze the existing IDs and any numbering conventions mentioned in the documents. Generate the next logical, unique ID. If no convention is clear, increment the highest existing number (e.g., if REQ-006 exists, suggest REQ-007).
2. Description Suggestion: Based on the project scope in the documentation, suggest a plausible and well-formed functional or non-functional requirement that appears to be missing or would be a logical next step for the project.

Return your answer as a single, raw JSON object with the keys "suggestedId" and "suggestedDescription". {_RAW_JSON}
"""


def test_case_suggestion(requirement: Requirement, existing_ids: List[str], context: str) -> str:
    return f"""You are an expert QA Engineer and automation specialist. Your task is to generate test cases for a given software requirement.

PROJECT CONTEXT:
{context}
---
REQUIREMENT TO TEST:
- ID: {requirement.id}
- Description: {requirement.description}
- Priority: {requirement.priority.value}
- Status: {requirement.status.value}
---
EXISTING TEST CASE IDs:
{', '.join(existing_ids) or 'None'}
---
TASK:
Generate 2 to 3 relevant test cases for the requirement above. For each test case, provide:
1. A concise, human-readable description.
2. A simple BDD-style Gherkin script (Feature, Scenario, Given, When, Then) for test automation.

Return your answer as a single, raw JSON array of objects. Each object must have the keys "description" and "gherkin". {_RAW_JSON}
"""


def pull_request_analysis(
    pr: PullRequest, files: List[PullRequestFile], project: ProjectData
) -> str:
    requirements = [
        {"id": r.id, "description": r.description, "status": r.status.value}
        for r in project.requirements
    ]
    cis = [
        {"id": c.id, "name": c.name, "type": c.type.value, "version": c.version}
        for c in project.configuration_items
    ]
    risks = [
        {"id": r.id, "description": r.description, "status": r.status.value}
        for r in project.risks
    ]
    changed = [f.model_dump() for f in files]
    return f"""You are an expert project manager and CMMI Level 5 lead appraiser named Ignition AI. Your task is to analyze a GitHub Pull Request (PR) in the context of a larger software project.

=== PROJECT CONTEXT ===
Requirements:
{json.dumps(requirements, indent=2)}
Configuration Items (CIs):
{json.dumps(cis, indent=2)}
Risks:
{json.dumps(risks, indent=2)}
=======================

=== PULL REQUEST TO ANALYZE ===
PR Number: {pr.number}
PR Title: "{pr.title}"
PR Author: {pr.user_login}
Changed Files:
{json.dumps(changed, indent=2)}
============================

=== YOUR TASK ===
Analyze the PR and provide a structured JSON response.
1. **summary**: A brief, one-paragraph summary of what this PR accomplishes and its potential impact on the project.
2. **linkedRequirementIds**: IDs of ALL relevant requirements this PR implements, fixes, or addresses. An array of strings, empty if none.
3. **linkedCiIds**: IDs of ALL Configuration Items directly modified or impacted by the changed files. An array of strings, empty if none.
4. **linkedRiskIds**: IDs of ALL risks related to or mitigated by this PR. An array of strings, empty if none.
5. **suggestedCommitMessage**: A well-formatted conventional commit message (e.g., "feat(scope): title") with a body, referencing the identified requirement IDs (e.g., "Closes: REQ-001, REQ-003").

Return your answer as a single, raw JSON object with the keys "summary", "linkedRequirementIds", "linkedCiIds", "linkedRiskIds", and "suggestedCommitMessage". {_RAW_JSON}
"""


def repository_scaffold(context: str) -> str:
    return f"""You are an expert DevOps engineer. Your task is to generate the starting files of a repository for the project described below. The repository will also hold the project's own Ignition data, so the tool manages its own development process.

PROJECT CONTEXT:
---
{context}
---

TASK:
Generate content for the following files:
1. ".gitignore": A comprehensive gitignore for the project's likely stack.
2. "README.md": A professional README with an overview, setup instructions, and a short explanation of how requirements, risks and tests are tracked with Ignition.
3. ".github/workflows/ci.yml": A CI workflow for testing and quality checks.
4. ".github/CONTRIBUTING.md": A contributing guide.
5. ".github/PULL_REQUEST_TEMPLATE.md": A PR template with a compliance checklist referencing requirement IDs.

Return your answer as a single, raw JSON object where keys are the full file paths and values are the complete string content for each file. {_RAW_JSON}
"""


TEST_WORKFLOW = f"""You are an expert DevOps engineer. Your task is to generate two files for setting up an automated testing pipeline that reads test cases from an 'ignition-project.json' file.

The output must be a single raw JSON object with two keys: '.github/workflows/ignition-testing.yml' and 'scripts/ignition-test-runner.js'.

File 1: '.github/workflows/ignition-testing.yml'
This GitHub Actions workflow must:
- Be named 'Ignition Automated Testing'.
- Trigger on push and pull_request events for the 'main' branch.
- Have 'contents: write' permissions.
- Use a single job named 'test' that checks out the repository, sets up Node.js v20, runs 'npm install' and executes 'node ./scripts/ignition-test-runner.js'.

File 2: 'scripts/ignition-test-runner.js'
This Node.js script must:
1. Read the project data from './ignition-project.json'.
2. Write every test case with a non-empty 'gherkin' script to 'ignition-tests/[TEST_CASE_ID].feature'.
3. Run 'npx cucumber-js ignition-tests --format json:test-results.json || true'.
4. Read the Cucumber JSON results and set each matching test case's 'status' to 'Passed' or 'Failed', its 'updatedBy' to 'Automation' and its 'updatedAt' to the current ISO string.
5. If any status changed, write 'ignition-project.json' back, then commit and push it as 'github-actions[bot]' with the message 'chore(testing): update automated test results'. Otherwise log 'No test status changes needed.'.

{_RAW_JSON}
"""
