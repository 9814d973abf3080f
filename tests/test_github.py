"""
Tests for the GitHub REST client.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from autopilot import github
from autopilot.errors import GitHubError, RepositoryExistsError


def response(status, body=None, headers=None):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.json.return_value = body or {}
    resp.headers = headers or {}
    resp.text = ""
    resp.reason = "reason"
    return resp


class TestValidateToken:
    @patch("autopilot.github.requests.get")
    def test_valid_token(self, get):
        get.return_value = response(
            200,
            {"login": "octocat", "name": "The Octocat", "email": None},
            {"X-OAuth-Scopes": "repo, read:user"},
        )
        info = github.validate_token("tok")

        assert info.valid
        assert info.username == "octocat"
        assert info.name == "The Octocat"
        assert info.email is None
        assert info.scopes == ["repo", "read:user"]
        url = get.call_args.args[0]
        headers = get.call_args.kwargs["headers"]
        assert url == "https://api.github.com/user"
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "application/vnd.github+json"

    @patch("autopilot.github.requests.get")
    def test_fine_grained_token_has_no_scopes(self, get):
        get.return_value = response(200, {"login": "octocat"})
        assert github.validate_token("tok").scopes == []

    @patch("autopilot.github.requests.get")
    def test_unauthorized(self, get):
        get.return_value = response(401, {"message": "Bad credentials"})
        info = github.validate_token("bad")
        assert not info.valid
        assert info.username is None

    @patch("autopilot.github.requests.get")
    def test_server_error_raises(self, get):
        get.return_value = response(503, {"message": "Service unavailable"})
        with pytest.raises(GitHubError) as excinfo:
            github.validate_token("tok")
        assert excinfo.value.status == 503

    @patch("autopilot.github.requests.get", side_effect=requests.ConnectionError("offline"))
    def test_network_error_raises(self, _get):
        with pytest.raises(GitHubError, match="Could not reach GitHub"):
            github.validate_token("tok")

    @patch("autopilot.github.requests.get")
    def test_api_url_override(self, get, monkeypatch):
        monkeypatch.setenv("AUTOPILOT_GITHUB_API", "https://ghe.example.com/api/v3/")
        get.return_value = response(200, {"login": "me"})
        github.validate_token("tok")
        assert get.call_args.args[0] == "https://ghe.example.com/api/v3/user"


class TestCreateRepository:
    @patch("autopilot.github.requests.post")
    def test_created(self, post):
        post.return_value = response(201, {
            "name": "demo",
            "clone_url": "https://github.com/octocat/demo.git",
            "html_url": "https://github.com/octocat/demo",
        })
        repo = github.create_repository("tok", "demo", description="A demo", private=False)

        assert repo.clone_url == "https://github.com/octocat/demo.git"
        assert repo.html_url == "https://github.com/octocat/demo"
        assert post.call_args.args[0] == "https://api.github.com/user/repos"
        assert post.call_args.kwargs["json"] == {
            "name": "demo",
            "private": False,
            "auto_init": False,
            "description": "A demo",
        }

    @patch("autopilot.github.requests.post")
    def test_empty_description_is_omitted(self, post):
        post.return_value = response(201, {"clone_url": "c", "html_url": "h"})
        github.create_repository("tok", "demo")
        assert "description" not in post.call_args.kwargs["json"]
        assert post.call_args.kwargs["json"]["private"] is True

    @patch("autopilot.github.requests.post")
    def test_name_taken(self, post):
        post.return_value = response(422, {"message": "Repository creation failed."})
        with pytest.raises(RepositoryExistsError) as excinfo:
            github.create_repository("tok", "demo")
        assert excinfo.value.name == "demo"
        assert excinfo.value.status == 422

    @patch("autopilot.github.requests.post")
    def test_other_failure(self, post):
        post.return_value = response(403, {"message": "Resource not accessible by integration"})
        with pytest.raises(GitHubError) as excinfo:
            github.create_repository("tok", "demo")
        assert not isinstance(excinfo.value, RepositoryExistsError)
        assert excinfo.value.message == "Resource not accessible by integration"
