"""
Gemini client for Ignition's AI features.

Two primitives, generate_text and generate_json, plus the prompt
operations built on them. Every failure (missing key, SDK or transport
error, empty reply, malformed JSON, unexpected shape) is raised as
AIGenerationError. There is no retry.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from ignition.ai import prompts
from ignition.constants import (
    AUDIT_LOG_DESCRIPTION,
    AUDIT_LOG_VERSION,
    DEFAULT_AI_MODEL,
    DEFAULT_AUDIT_LOG_PATH,
    DEFAULT_PROJECT_FILE_PATH,
    TEST_WORKFLOW_FILES,
)
from ignition.exceptions import AIGenerationError
from ignition.managers.audit_manager import create_audit_entry
from ignition.models.analysis import PrAnalysisResult
from ignition.models.audit import AuditLogFile, AuditLogMetadata
from ignition.models.base import Actor
from ignition.models.entities import Requirement
from ignition.models.github import PullRequest, PullRequestFile
from ignition.models.project import ProjectData

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    text = text.strip()
    match = _FENCE_RE.match(text)
    if match and match.group(2):
        return match.group(2).strip()
    return text


class AIClient:
    """
    Thin wrapper around google-genai's ``models.generate_content``.

    Args:
        api_key: Gemini API key. Without it every call raises
            AIGenerationError.
        model: Model name.
        client: Pre-built genai client (tests inject a fake).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_AI_MODEL,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise AIGenerationError(
                    "AI client not available. Set GEMINI_API_KEY to enable AI features."
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_mime_type: Optional[str] = None,
    ) -> str:
        client = self._get_client()
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type=response_mime_type,
        )
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error("Gemini generate_content failed model=%s error=%s", self.model, e)
            raise AIGenerationError(f"AI request failed: {e}") from e

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise AIGenerationError("The AI returned an empty response.")
        return text

    # ── Primitives ──────────────────────────────────────────────────────────

    def generate_text(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        return self._generate(prompt, system_instruction=system_instruction)

    def generate_json(self, prompt: str) -> Any:
        """Generate, strip any code fence, and parse the reply as JSON."""
        text = self._generate(prompt, response_mime_type="application/json")
        try:
            return json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            logger.error("AI response was not valid JSON: %s", e)
            raise AIGenerationError("AI response was not valid JSON.") from e

    # ── Prompt operations ───────────────────────────────────────────────────

    def improve_content(self, text: str) -> str:
        return self.generate_text(prompts.improve_content(text), prompts.SYSTEM_INSTRUCTION)

    def generate_document_section(
        self, document_title: str, section_title: str, project: ProjectData
    ) -> str:
        prompt = prompts.document_section(
            document_title, section_title, prompts.project_context_summary(project)
        )
        return self.generate_text(prompt, prompts.SYSTEM_INSTRUCTION)

    def suggest_requirement_details(self, project: ProjectData) -> Dict[str, str]:
        """
        Suggest the id and description of the next requirement.

        Returns:
            Dict with ``suggested_id`` and ``suggested_description``.
        """
        parsed = self.generate_json(prompts.requirement_suggestion(project))
        if not (
            isinstance(parsed, dict)
            and isinstance(parsed.get("suggestedId"), str)
            and isinstance(parsed.get("suggestedDescription"), str)
        ):
            raise AIGenerationError("AI response was not in the expected format.")
        return {
            "suggested_id": parsed["suggestedId"],
            "suggested_description": parsed["suggestedDescription"],
        }

    def suggest_test_cases(self, requirement: Requirement, project: ProjectData) -> List[Dict[str, str]]:
        """Suggest test cases (description and Gherkin) for a requirement."""
        prompt = prompts.test_case_suggestion(
            requirement,
            [tc.id for tc in project.test_cases],
            prompts.project_context_summary(project),
        )
        parsed = self.generate_json(prompt)
        if not (
            isinstance(parsed, list)
            and parsed
            and all(
                isinstance(item, dict)
                and isinstance(item.get("description"), str)
                and isinstance(item.get("gherkin"), str)
                for item in parsed
            )
        ):
            raise AIGenerationError(
                "AI response was not in the expected format of a list of test cases."
            )
        return [{"description": item["description"], "gherkin": item["gherkin"]} for item in parsed]

    def analyze_pull_request(
        self,
        pr: PullRequest,
        files: List[PullRequestFile],
        project: ProjectData,
    ) -> PrAnalysisResult:
        """
        Summarize a pull request and link it to project entities.

        Ids in the reply are mapped back to the project's entities; ids
        that do not exist are dropped.
        """
        parsed = self.generate_json(prompts.pull_request_analysis(pr, files, project))
        if not (
            isinstance(parsed, dict)
            and isinstance(parsed.get("summary"), str)
            and isinstance(parsed.get("linkedRequirementIds"), list)
            and isinstance(parsed.get("linkedCiIds"), list)
            and isinstance(parsed.get("linkedRiskIds"), list)
            and isinstance(parsed.get("suggestedCommitMessage"), str)
        ):
            raise AIGenerationError("AI response was not in the expected format for PR analysis.")

        requirement_ids = set(parsed["linkedRequirementIds"])
        ci_ids = set(parsed["linkedCiIds"])
        risk_ids = set(parsed["linkedRiskIds"])
        return PrAnalysisResult(
            summary=parsed["summary"],
            suggested_commit_message=parsed["suggestedCommitMessage"],
            linked_requirements=[r for r in project.requirements if r.id in requirement_ids],
            linked_cis=[c for c in project.configuration_items if c.id in ci_ids],
            linked_risks=[r for r in project.risks if r.id in risk_ids],
        )

    def scaffold_repository_files(
        self,
        project: ProjectData,
        project_path: str = DEFAULT_PROJECT_FILE_PATH,
        audit_log_path: str = DEFAULT_AUDIT_LOG_PATH,
    ) -> Dict[str, str]:
        """
        Generate starter repository files.

        The result always includes the project file and an initial audit
        log alongside whatever the model produced.
        """
        parsed = self.generate_json(
            prompts.repository_scaffold(prompts.project_context_summary(project))
        )
        if not (
            isinstance(parsed, dict)
            and parsed
            and all(isinstance(k, str) and isinstance(v, str) for k, v in parsed.items())
        ):
            raise AIGenerationError("AI response was not in the expected format for repo scaffolding.")

        files = dict(parsed)
        files[project_path] = project.to_json()
        init_entry = create_audit_entry(
            "AUDIT_LOG_INIT",
            "Audit log initialized during repository scaffolding",
            {
                "projectName": project.project_name,
                "scaffoldedFiles": len(files) + 1,
                "metaCompliance": True,
            },
            Actor.SYSTEM,
        )
        audit_file = AuditLogFile(
            audit_log=[init_entry],
            metadata=AuditLogMetadata(
                version=AUDIT_LOG_VERSION,
                project_name=project.project_name,
                description=AUDIT_LOG_DESCRIPTION,
            ),
        )
        files[audit_log_path] = json.dumps(audit_file.to_dict(), indent=2)
        return files

    def generate_test_workflow_files(self) -> Dict[str, str]:
        """Generate the test workflow and its runner script."""
        parsed = self.generate_json(prompts.TEST_WORKFLOW)
        if not (
            isinstance(parsed, dict)
            and all(isinstance(parsed.get(path), str) for path in TEST_WORKFLOW_FILES)
        ):
            raise AIGenerationError("AI response was not in the expected format for the test workflow.")
        return {path: parsed[path] for path in TEST_WORKFLOW_FILES}
