"""
Test fixtures for the Ignition test suite.

Provides:
- Temporary directory fixtures (isolated from the project .ignition/)
- Mock data builders for creating projects and entities
- Fake HTTP responses and a mock requests session for GitHubClient
- A fake genai client for AIClient
"""

import base64
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from requests import Response
from requests.structures import CaseInsensitiveDict

from ignition.github.client import GitHubClient
from ignition.github.settings import GitHubSettings
from ignition.managers.events import EventBus
from ignition.models.entities import (
    ConfigurationItem,
    ProcessAsset,
    Requirement,
    Risk,
    TestCase,
)
from ignition.models.project import Document, DocumentSection, ProjectData

VALID_PAT = "ghp_" + "a" * 36
REPO_URL = "https://github.com/acme/widgets"


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't modify the project's actual .ignition/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="ignition_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def ignition_dir(temp_dir: Path) -> Path:
    """Path of a .ignition/ directory inside temp_dir (not yet created)."""
    return temp_dir / ".ignition"


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building Ignition entities for testing."""

    @staticmethod
    def requirement(id: str = "REQ-1", description: str = "Users can log in", **kwargs) -> Requirement:
        return Requirement(id=id, description=description, **kwargs)

    @staticmethod
    def test_case(id: str = "TC-1", description: str = "Login works", **kwargs) -> TestCase:
        return TestCase(id=id, description=description, **kwargs)

    @staticmethod
    def risk(id: str = "RISK-1", description: str = "Password leak", **kwargs) -> Risk:
        return Risk(id=id, description=description, **kwargs)

    @staticmethod
    def ci(id: str = "CI-1", name: str = "Auth Service", **kwargs) -> ConfigurationItem:
        return ConfigurationItem(id=id, name=name, **kwargs)

    @staticmethod
    def asset(id: str = "PA-1", name: str = "Login archetype",
              type: str = "Requirement Archetype", **kwargs) -> ProcessAsset:
        return ProcessAsset(id=id, name=name, type=type, **kwargs)

    @staticmethod
    def document(id: str = "plan", title: str = "Project Plan",
                 sections: Optional[List[DocumentSection]] = None) -> Document:
        if sections is None:
            sections = [
                DocumentSection(id="intro", title="Introduction",
                                description="This project builds a login system."),
                DocumentSection(id="scope", title="Scope", description=""),
            ]
        return Document(id=id, title=title, content=sections)


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test item creation."""
    return MockDataBuilder()


@pytest.fixture
def sample_project(mock_data: MockDataBuilder) -> ProjectData:
    """A small project with one of every entity and no links."""
    return ProjectData(
        project_name="Widgets",
        documents={"plan": mock_data.document()},
        requirements=[mock_data.requirement(), mock_data.requirement("REQ-2", "Users can log out")],
        test_cases=[mock_data.test_case()],
        risks=[mock_data.risk()],
        configuration_items=[mock_data.ci()],
        process_assets=[mock_data.asset()],
    )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


# =============================================================================
# HTTP Fakes
# =============================================================================


def make_response(
    status: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    url: str = "https://api.github.com/",
) -> Response:
    """Build a real requests.Response without any network traffic."""
    response = Response()
    response.status_code = status
    response.url = url
    response.headers = CaseInsensitiveDict(headers or {})
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.encoding = "utf-8"
    return response


def file_body(content: str, sha: str = "blob-sha", path: str = "ignition-project.json") -> Dict[str, Any]:
    """Contents API body for a file."""
    return {
        "type": "file",
        "path": path,
        "sha": sha,
        "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
    }


def commit_body(content_sha: str = "new-blob", commit_sha: str = "commit-sha") -> Dict[str, Any]:
    """Contents API body for a successful PUT."""
    return {
        "content": {"sha": content_sha},
        "commit": {"sha": commit_sha, "html_url": f"https://github.com/acme/widgets/commit/{commit_sha}"},
    }


@pytest.fixture
def session() -> MagicMock:
    """Mock requests.Session; set ``session.request.side_effect`` per test."""
    return MagicMock()


@pytest.fixture
def sleeps() -> List[float]:
    """Records the delays GitHubClient asked to sleep for."""
    return []


@pytest.fixture
def github_settings() -> GitHubSettings:
    return GitHubSettings(repo_url=REPO_URL, pat=VALID_PAT)


@pytest.fixture
def github_client(github_settings, session, sleeps) -> GitHubClient:
    """GitHubClient wired to the mock session; sleeping is recorded, not done."""
    return GitHubClient(
        github_settings,
        session=session,
        sleep=sleeps.append,
        clock=lambda: 1000.0,
    )


# =============================================================================
# AI Fakes
# =============================================================================


class FakeGenAIClient:
    """Stands in for google.genai.Client; replies are queued per test."""

    def __init__(self, replies: Optional[List[Any]] = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []
        self.models = self

    def queue(self, reply: Any) -> None:
        self.replies.append(reply)

    def generate_content(self, model: str, contents: str, config: Any = None) -> Any:
        self.calls.append({"model": model, "contents": contents, "config": config})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return MagicMock(text=reply)


@pytest.fixture
def genai_client() -> FakeGenAIClient:
    return FakeGenAIClient()
