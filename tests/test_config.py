import pytest

from idl_schema.config import CONFIG_ENV_VAR, DEFAULTS, load_config
from idl_schema.errors import ConfigError


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_defaults():
    assert load_config() == DEFAULTS


def test_overrides(tmp_path):
    config = load_config(write(tmp_path, "show_hidden: true\nindent: 4\nlog_level: debug\n"))
    assert config == {"show_hidden": True, "encoding": "hex", "indent": 4, "log_level": "DEBUG"}


def test_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, write(tmp_path, "encoding: base58\n"))
    assert load_config()["encoding"] == "base58"


def test_empty_file(tmp_path):
    assert load_config(write(tmp_path, "")) == DEFAULTS


@pytest.mark.parametrize("text, match", [
    ("colour: red\n", "Unknown config key"),
    ("show_hidden: maybe\n", "show_hidden"),
    ("encoding: utf8\n", "encoding"),
    ("indent: -1\n", "indent"),
    ("indent: true\n", "indent"),
    ("log_level: 3\n", "log_level"),
    ("- a\n- b\n", "mapping"),
    ("a: [\n", "YAML"),
])
def test_invalid(tmp_path, text, match):
    with pytest.raises(ConfigError, match=match):
        load_config(write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="does not exist"):
        load_config(str(tmp_path / "missing.yaml"))
