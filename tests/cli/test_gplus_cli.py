from datetime import datetime, timedelta, timezone

from typer.testing import CliRunner

from gplus.application import services
from gplus.application.exceptions import AuthStage, ConsentFailure, AuthorizationError, PlusApiError
from gplus.cli.main import app
from gplus.config import settings
from gplus.domain.credential import Credential
from tests.fakes import MemoryCredentialStore

runner = CliRunner()


class _FakePlusClient:
    def __init__(self):
        self.calls = []

    def search_people(self, query, max_results=5):
        self.calls.append(("search", query, max_results))
        return [{"id": "42", "displayName": "Marlon Carvalho", "url": "https://plus.example/42"}]

    def list_activities(self, user_id, collection="public", max_results=5):
        self.calls.append(("activities", user_id, max_results))
        return [{"id": "a1", "object": {"content": "Hello Google+"}}]

    def get_activity(self, activity_id):
        self.calls.append(("activity", activity_id))
        return {"id": activity_id, "title": "Post", "actor": {"displayName": "Marlon"}, "object": {"content": "Body"}}

    def get_profile(self, user_id="me"):
        self.calls.append(("profile", user_id))
        return {"id": "me", "displayName": "Me", "url": "https://plus.example/me"}


def _patch_connect(monkeypatch, client):
    captured = {}

    def fake_connect(user_key, session, *, on_auth_url=None, config=None):
        captured["user_key"] = user_key
        return client

    monkeypatch.setattr(services, "connect", fake_connect)
    return captured


def test_search_shows_people_and_activities(monkeypatch):
    client = _FakePlusClient()
    captured = _patch_connect(monkeypatch, client)

    result = runner.invoke(app, ["search", "Marlon Carvalho", "--max-results", "3", "--user", "alice"])

    assert result.exit_code == 0
    assert "Name: Marlon Carvalho" in result.stdout
    assert captured["user_key"] == "alice"
    assert ("search", "Marlon Carvalho", 3) in client.calls
    assert ("activities", "42", 3) in client.calls


def test_activities_command_prints_content(monkeypatch):
    _patch_connect(monkeypatch, _FakePlusClient())

    result = runner.invoke(app, ["activities", "42"])

    assert result.exit_code == 0
    assert "Activity: Hello Google+" in result.stdout


def test_profile_and_activity_commands(monkeypatch):
    client = _FakePlusClient()
    _patch_connect(monkeypatch, client)

    profile = runner.invoke(app, ["profile"])
    activity = runner.invoke(app, ["activity", "a9"])

    assert profile.exit_code == 0
    assert "Name: Me" in profile.stdout
    assert activity.exit_code == 0
    assert "Activity: Body" in activity.stdout
    assert ("activity", "a9") in client.calls


def test_authorization_failure_reports_stage(monkeypatch):
    def fake_connect(user_key, session, *, on_auth_url=None, config=None):
        raise AuthorizationError("no callback", stage=AuthStage.CONSENT, reason=ConsentFailure.TIMEOUT)

    monkeypatch.setattr(services, "connect", fake_connect)

    result = runner.invoke(app, ["profile"])

    assert result.exit_code == 1
    assert "stage 'consent'" in result.stdout
    assert "timeout" in result.stdout


def test_api_failure_exits_non_zero(monkeypatch):
    class _Failing(_FakePlusClient):
        def get_profile(self, user_id="me"):
            raise PlusApiError("gone", status_code=404)

    _patch_connect(monkeypatch, _Failing())

    result = runner.invoke(app, ["profile"])

    assert result.exit_code == 1
    assert "Google+ API call failed" in result.stdout


def test_authorize_without_secrets_file_is_config_error(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "CLIENT_SECRETS_FILE", tmp_path / "missing.json")

    result = runner.invoke(app, ["authorize", "--no-browser"])

    assert result.exit_code == 1
    assert "Configuration problem" in result.stdout


def test_authorize_prints_token_summary(monkeypatch):
    credential = Credential(
        "tok1-very-long-access-token",
        "ref1",
        datetime(2030, 1, 1, tzinfo=timezone.utc),
        frozenset({"https://www.googleapis.com/auth/plus.me"}),
    )

    class _Flow:
        def authorize(self, user_key):
            assert user_key == "user"
            return credential

    monkeypatch.setattr(services, "build_authorization_flow", lambda session, *, on_auth_url=None: _Flow())

    result = runner.invoke(app, ["authorize", "--no-browser"])

    assert result.exit_code == 0
    assert "[OK] Authorized 'user'." in result.stdout
    assert "tok1-very-lo..." in result.stdout
    assert "tok1-very-long-access-token" not in result.stdout
    assert "Refresh token: present" in result.stdout


def test_auth_status_reports_missing_credential(monkeypatch):
    monkeypatch.setattr(services, "build_credential_store", lambda: MemoryCredentialStore())

    result = runner.invoke(app, ["auth-status"])

    assert result.exit_code == 1
    assert "ACTION REQUIRED" in result.stdout


def test_auth_status_reports_valid_credential(monkeypatch):
    credential = Credential(
        "tok",
        "ref",
        datetime.now(timezone.utc) + timedelta(hours=1),
        frozenset(settings.OAUTH_SCOPES),
    )
    monkeypatch.setattr(
        services, "build_credential_store", lambda: MemoryCredentialStore({"user": credential})
    )

    result = runner.invoke(app, ["auth-status"])

    assert result.exit_code == 0
    assert "user: OK" in result.stdout


def test_logs_shows_only_the_requested_tail(monkeypatch, tmp_path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    (log_dir / "gplus.log").write_text("one\ntwo\nthree\n", encoding="utf-8")
    monkeypatch.setattr(settings, "LOG_DIR", log_dir)

    result = runner.invoke(app, ["logs", "2"])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["two", "three"]


def test_logs_rejects_non_positive_count(monkeypatch, tmp_path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    (log_dir / "gplus.log").write_text("one\ntwo\n", encoding="utf-8")
    monkeypatch.setattr(settings, "LOG_DIR", log_dir)

    result = runner.invoke(app, ["logs", "0"])

    assert result.exit_code != 0
    assert "one" not in result.stdout
