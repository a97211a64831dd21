"""
Tests for GitHubClient, settings parsing and error mapping.

All HTTP traffic goes through a mock requests.Session; sleeping is
recorded instead of performed.
"""

import base64
import json

import pytest
import requests

from conftest import REPO_URL, VALID_PAT, commit_body, file_body, make_response
from ignition.exceptions import (
    ConfigurationError,
    ErrorCategory,
    GitHubConflictError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    ValidationError,
)
from ignition.github.client import GitHubClient
from ignition.github.errors import categorize, remediation_for
from ignition.github.settings import GitHubSettings, is_safe_path, is_valid_token, parse_repo_url

CONTENTS_URL = "https://api.github.com/repos/acme/widgets/contents/ignition-project.json"


class TestSettings:
    @pytest.mark.parametrize("url", [
        "https://github.com/acme/widgets",
        "https://github.com/acme/widgets.git",
        "https://github.com/acme/widgets/",
        "http://www.github.com/acme/widgets",
    ])
    def test_parse_repo_url(self, url):
        ref = parse_repo_url(url)
        assert (ref.owner, ref.repo) == ("acme", "widgets")
        assert ref.full_name == "acme/widgets"

    @pytest.mark.parametrize("url", ["", "https://gitlab.com/acme/widgets", "not a url",
                                     "https://github.com/acme"])
    def test_parse_repo_url_rejects(self, url):
        assert parse_repo_url(url) is None

    def test_token_formats(self):
        assert is_valid_token(VALID_PAT)
        assert is_valid_token("github_pat_" + "b" * 30)
        assert not is_valid_token("password")

    def test_safe_paths(self):
        assert is_safe_path("docs/ignition-project.json")
        assert not is_safe_path("../secrets")
        assert not is_safe_path("/etc/passwd")

    def test_validation_errors(self):
        settings = GitHubSettings(repo_url="https://example.com/x", pat="short", file_path="../x")
        assert len(settings.validation_errors()) == 3
        with pytest.raises(ConfigurationError):
            settings.validate_settings()

    def test_client_requires_valid_repo(self, session):
        with pytest.raises(ConfigurationError):
            GitHubClient(GitHubSettings(repo_url="bad", pat=VALID_PAT), session=session)


class TestRequests:
    def test_sends_auth_and_version_headers(self, github_client, session):
        session.request.return_value = make_response(200, file_body("{}"))
        github_client.get_file()
        method, url = session.request.call_args.args
        headers = session.request.call_args.kwargs["headers"]
        assert (method, url) == ("GET", CONTENTS_URL)
        assert headers["Authorization"] == f"token {VALID_PAT}"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_get_file_decodes_content(self, github_client, session):
        session.request.return_value = make_response(200, file_body('{"a": "é"}', sha="s1"))
        remote = github_client.get_file()
        assert remote.content == '{"a": "é"}'
        assert remote.sha == "s1"

    def test_get_file_rejects_directories(self, github_client, session):
        session.request.return_value = make_response(200, [{"type": "file"}])
        with pytest.raises(GitHubError, match="not a file"):
            github_client.get_file("docs")

    def test_get_file_rejects_files_too_large_to_inline(self, github_client, session):
        body = dict(file_body(""), content="", encoding="none", size=2_000_000)
        session.request.return_value = make_response(200, body)
        with pytest.raises(GitHubError, match="too large") as exc_info:
            github_client.get_file()
        assert exc_info.value.category == ErrorCategory.CLIENT_ERROR

    def test_get_file_sha_none_when_missing(self, github_client, session):
        session.request.return_value = make_response(404, {"message": "Not Found"})
        assert github_client.get_file_sha() is None

    def test_put_file_encodes_and_returns_commit(self, github_client, session):
        session.request.return_value = make_response(200, commit_body("blob2", "c2"))
        result = github_client.put_file("ignition-project.json", "hello", "msg", sha="blob1")
        body = session.request.call_args.kwargs["json"]
        assert base64.b64decode(body["content"]).decode() == "hello"
        assert body["sha"] == "blob1"
        assert result.content_sha == "blob2"
        assert result.commit_sha == "c2"

    def test_put_file_without_sha_creates(self, github_client, session):
        session.request.return_value = make_response(201, commit_body())
        github_client.put_file("new.txt", "x", "add")
        assert "sha" not in session.request.call_args.kwargs["json"]

    def test_put_file_requires_message(self, github_client, session):
        with pytest.raises(ValidationError):
            github_client.put_file("a.txt", "x", "  ")
        session.request.assert_not_called()

    def test_save_file_resolves_sha(self, github_client, session):
        session.request.side_effect = [
            make_response(200, file_body("old", sha="old-sha")),
            make_response(200, commit_body()),
        ]
        github_client.save_file("ignition-project.json", "new", "update")
        assert session.request.call_args.kwargs["json"]["sha"] == "old-sha"


class TestRetries:
    def test_rate_limit_then_success_retries_once(self, github_client, session, sleeps):
        session.request.side_effect = [
            make_response(429, {"message": "slow down"}, {"Retry-After": "3"}),
            make_response(200, commit_body("blob", "commit-123")),
        ]
        result = github_client.put_file("a.txt", "x", "msg", sha="s")
        assert result.commit_sha == "commit-123"
        assert session.request.call_count == 2
        assert sleeps == [3.0]

    def test_rate_limit_uses_reset_header(self, github_client, session, sleeps):
        session.request.side_effect = [
            make_response(403, {"message": "rate limit"},
                          {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1010"}),
            make_response(200, file_body("{}")),
        ]
        github_client.get_file()
        assert sleeps == [10.0]

    def test_rate_limit_wait_is_clamped(self, github_client, session, sleeps):
        session.request.side_effect = [
            make_response(429, {}, {"x-ratelimit-reset": "999999"}),
            make_response(429, {}, {"x-ratelimit-reset": "0"}),
            make_response(200, file_body("{}")),
        ]
        github_client.get_file()
        assert sleeps == [60.0, 1.0]

    def test_rate_limit_exhausts_retries(self, github_client, session):
        session.request.return_value = make_response(429, {"message": "limit"})
        with pytest.raises(GitHubRateLimitError):
            github_client.get_file()
        assert session.request.call_count == 4

    def test_server_errors_back_off_exponentially(self, github_client, session, sleeps):
        session.request.side_effect = [
            make_response(502),
            make_response(503),
            make_response(200, file_body("{}")),
        ]
        github_client.get_file()
        assert sleeps == [1.0, 2.0]

    def test_server_error_exhausts_retries(self, github_client, session, sleeps):
        session.request.return_value = make_response(500, {"message": "oops"})
        with pytest.raises(GitHubError) as exc_info:
            github_client.get_file()
        assert exc_info.value.category == ErrorCategory.SERVER_ERROR
        assert sleeps == [1.0, 2.0, 4.0]

    def test_network_error_is_retried(self, github_client, session):
        session.request.side_effect = [
            requests.ConnectionError("reset"),
            make_response(200, file_body("{}")),
        ]
        assert github_client.get_file().content == "{}"

    def test_network_error_exhausts_retries(self, github_client, session):
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(GitHubError) as exc_info:
            github_client.get_file()
        assert exc_info.value.category == ErrorCategory.NETWORK_ERROR
        assert session.request.call_count == 4

    def test_chunked_encoding_error_is_retried(self, github_client, session, sleeps):
        session.request.side_effect = [
            requests.exceptions.ChunkedEncodingError("truncated"),
            make_response(200, file_body("{}")),
        ]
        assert github_client.get_file().content == "{}"
        assert sleeps == [1.0]

    def test_other_request_errors_become_network_errors(self, github_client, session):
        session.request.side_effect = requests.exceptions.TooManyRedirects("loop")
        with pytest.raises(GitHubError) as exc_info:
            github_client.get_file()
        assert exc_info.value.category == ErrorCategory.NETWORK_ERROR
        assert session.request.call_count == 1

    def test_conflict_is_not_retried(self, github_client, session):
        session.request.return_value = make_response(409, {"message": "sha mismatch"})
        with pytest.raises(GitHubConflictError) as exc_info:
            github_client.put_file("a.txt", "x", "msg", sha="stale")
        assert session.request.call_count == 1
        assert exc_info.value.status == 409

    def test_422_sha_is_conflict(self, github_client, session):
        session.request.return_value = make_response(
            422, {"message": "Invalid request. \"sha\" wasn't supplied."}
        )
        with pytest.raises(GitHubConflictError):
            github_client.put_file("a.txt", "x", "msg")

    def test_not_found(self, github_client, session):
        session.request.return_value = make_response(
            404, {"message": "Not Found", "documentation_url": "https://docs.github.com"}
        )
        with pytest.raises(GitHubNotFoundError) as exc_info:
            github_client.get_file()
        assert exc_info.value.documentation_url == "https://docs.github.com"
        assert "GitHub API error (404): Not Found" in str(exc_info.value)

    def test_low_rate_limit_warning(self, github_settings, session):
        warnings = []
        client = GitHubClient(github_settings, session=session, on_rate_limit_warning=warnings.append)
        session.request.return_value = make_response(
            200, file_body("{}"), {"x-ratelimit-remaining": "5", "x-ratelimit-limit": "5000"}
        )
        client.get_file()
        assert client.rate_limit.remaining == 5
        assert warnings[0].remaining == 5


class TestListing:
    def test_issues_follow_pagination_and_skip_pull_requests(self, github_client, session):
        next_url = "https://api.github.com/repositories/1/issues?page=2"
        session.request.side_effect = [
            make_response(200, [{"number": 1, "title": "Bug", "labels": [{"name": "bug"}]}],
                          {"Link": f'<{next_url}>; rel="next"'}),
            make_response(200, [{"number": 2, "title": "PR", "pull_request": {}},
                                {"number": 3, "title": "Feature"}]),
        ]
        issues = github_client.list_open_issues()
        assert [i.number for i in issues] == [1, 3]
        assert issues[0].labels == ["bug"]
        first, second = session.request.call_args_list
        assert first.kwargs["params"] == {"per_page": 100, "state": "open"}
        assert second.args[1] == next_url
        assert second.kwargs["params"] is None

    def test_pull_requests(self, github_client, session):
        session.request.return_value = make_response(200, [
            {"number": 7, "title": "Add login", "user": {"login": "dev"},
             "created_at": "2024-01-01T00:00:00Z"},
        ])
        prs = github_client.list_open_pull_requests()
        assert prs[0].user_login == "dev"
        assert prs[0].created_at.year == 2024

    def test_pull_request_files(self, github_client, session):
        session.request.return_value = make_response(200, [
            {"filename": "src/login.py", "status": "added", "additions": 10},
        ])
        files = github_client.list_pull_request_files(7)
        assert files[0].filename == "src/login.py"
        assert session.request.call_args.args[1].endswith("/pulls/7/files")

    def test_post_comment(self, github_client, session):
        session.request.return_value = make_response(201, {"id": 1, "html_url": "u"})
        assert github_client.post_comment(7, "Looks good")["html_url"] == "u"
        assert session.request.call_args.args[1].endswith("/issues/7/comments")

    @pytest.mark.parametrize("body", ["", "x" * 65537])
    def test_post_comment_validation(self, github_client, session, body):
        with pytest.raises(ValidationError):
            github_client.post_comment(7, body)
        session.request.assert_not_called()

    def test_recent_commits(self, github_client, session):
        session.request.return_value = make_response(200, [{
            "sha": "abc1234def",
            "html_url": "https://github.com/acme/widgets/commit/abc1234def",
            "author": {"login": "dev"},
            "commit": {"message": "feat: login", "author": {
                "name": "Dev", "email": "dev@example.com", "date": "2024-02-01T10:00:00Z"}},
        }])
        commits = github_client.list_recent_commits(limit=10)
        assert commits[0].author_login == "dev"
        assert commits[0].date.month == 2
        assert session.request.call_args.kwargs["params"] == {"per_page": 10}


class TestConnection:
    def test_reports_permissions(self, github_client, session):
        session.request.return_value = make_response(200, {
            "full_name": "acme/widgets",
            "permissions": {"pull": True, "push": True, "admin": False},
        })
        report = github_client.test_connection()
        assert report.success
        assert report.permissions == {"read": True, "write": True, "admin": False}

    def test_invalid_token(self, github_client, session):
        session.request.return_value = make_response(401, {"message": "Bad credentials"})
        report = github_client.test_connection()
        assert not report.success
        assert report.message == "Invalid Personal Access Token."

    def test_invalid_settings_skip_request(self, session):
        client = GitHubClient(GitHubSettings(repo_url=REPO_URL, pat="nope"), session=session)
        assert not client.test_connection().success
        session.request.assert_not_called()


class TestErrorMapping:
    @pytest.mark.parametrize("status,category", [
        (401, ErrorCategory.UNAUTHORIZED),
        (403, ErrorCategory.FORBIDDEN),
        (404, ErrorCategory.NOT_FOUND),
        (409, ErrorCategory.CONFLICT),
        (422, ErrorCategory.UNPROCESSABLE),
        (503, ErrorCategory.SERVER_ERROR),
        (400, ErrorCategory.CLIENT_ERROR),
    ])
    def test_categorize(self, status, category):
        assert categorize(status, "message") == category

    def test_remediation_for_forbidden_mentions_scope(self):
        error = GitHubError("no", category=ErrorCategory.FORBIDDEN, status=403)
        assert "'repo'" in remediation_for(error)

    def test_remediation_for_conflict_mentions_load(self):
        assert "github load" in remediation_for(GitHubConflictError("stale"))
