import pytest

from tfgate.core.errors import ValidationError
from tfgate.core.settings import Settings


def test_defaults():
    settings = Settings()
    assert settings.backend_namespace == "vela-system"
    assert settings.github_blocked == "false"
    assert (settings.default_provider_namespace, settings.default_provider_name) == ("default", "default")


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "tfgate.yaml"
    path.write_text("backend_namespace: terraform\ngithub_blocked: true\n")

    settings = Settings.load(str(path), environ={"GITHUB_BLOCKED": "false"})

    assert settings.backend_namespace == "terraform"
    assert settings.github_blocked == "false"


def test_file_booleans_stay_strings(tmp_path):
    path = tmp_path / "tfgate.yaml"
    path.write_text("github_blocked: true\n")
    assert Settings.from_file(str(path)).github_blocked == "True"


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "tfgate.yaml"
    path.write_text("backend_ns: x\n")
    with pytest.raises(ValidationError, match="backend_ns"):
        Settings.from_file(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(ValidationError):
        Settings.from_file(str(tmp_path / "absent.yaml"))


def test_overrides_skip_none():
    settings = Settings().with_overrides(backend_namespace=None, github_blocked="true")
    assert settings.backend_namespace == "vela-system"
    assert settings.github_blocked == "true"
