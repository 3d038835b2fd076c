"""Tests for secrets resolution and internal API key checks."""
import pytest

from linewatch.utils import secrets
from linewatch.utils.api_auth import verify_api_key
from linewatch.utils.secrets import SecretNotFoundError, read_secret, read_secret_optional


@pytest.fixture
def secret_dirs(tmp_path, monkeypatch):
    docker_dir = tmp_path / "run_secrets"
    local_dir = tmp_path / "secrets"
    docker_dir.mkdir()
    local_dir.mkdir()
    monkeypatch.setattr(secrets, "DOCKER_SECRETS_DIR", docker_dir)
    monkeypatch.setattr(secrets, "LOCAL_SECRETS_DIR", local_dir)
    return docker_dir, local_dir


def test_env_var_wins(secret_dirs, monkeypatch):
    docker_dir, _ = secret_dirs
    (docker_dir / "LINEWATCH_TEST_SECRET").write_text("from-docker")
    monkeypatch.setenv("LINEWATCH_TEST_SECRET", "from-env")
    assert read_secret("LINEWATCH_TEST_SECRET") == "from-env"


def test_docker_secret_before_local(secret_dirs, monkeypatch):
    docker_dir, local_dir = secret_dirs
    monkeypatch.delenv("LINEWATCH_TEST_SECRET", raising=False)
    (docker_dir / "LINEWATCH_TEST_SECRET").write_text("from-docker\n")
    (local_dir / "LINEWATCH_TEST_SECRET").write_text("from-local")
    assert read_secret("LINEWATCH_TEST_SECRET") == "from-docker"


def test_local_secret_file(secret_dirs, monkeypatch):
    _, local_dir = secret_dirs
    monkeypatch.delenv("LINEWATCH_TEST_SECRET", raising=False)
    (local_dir / "LINEWATCH_TEST_SECRET").write_text("from-local")
    assert read_secret("LINEWATCH_TEST_SECRET") == "from-local"


def test_missing_required_secret(secret_dirs, monkeypatch):
    monkeypatch.delenv("LINEWATCH_TEST_SECRET", raising=False)
    with pytest.raises(SecretNotFoundError, match="LINEWATCH_TEST_SECRET"):
        read_secret("LINEWATCH_TEST_SECRET")
    assert read_secret_optional("LINEWATCH_TEST_SECRET") is None


@pytest.mark.parametrize(
    "presented, expected, allowed",
    [
        (None, None, True),
        ("anything", "", True),
        (None, "s3cret", False),
        ("wrong", "s3cret", False),
        ("s3cret", "s3cret", True),
    ],
)
def test_verify_api_key(presented, expected, allowed):
    assert verify_api_key(presented, expected) is allowed
