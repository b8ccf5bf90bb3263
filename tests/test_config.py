import pytest

from simplesearch.config import (
    Config,
    ConfigError,
    ElasticSearchSettings,
    load_config,
    parse_duration,
)

YAML_TEXT = """\
read_timeout: 5s
write_timeout: 1m30s
idle_timeout: 2000000000
service_name: simplesearch
elasticsearch:
  transport:
    tls:
      tls_insecure: true
    tls_timeout: 10s
    idle_timeout: 500ms
"""


def _envs():
    return {
        "env": "",
        "address": "0.0.0.0:8080",
        "es_address": "https://localhost:9200",
        "es_username": "user",
        "es_password": "password",
    }


@pytest.mark.parametrize(
    "left, right",
    [
        ("1m30s", "90s"),
        ("1h", "60m"),
        ("1.5s", "1500ms"),
        ("1s", "1000000us"),
        ("1ms", "1000µs"),
        ("+3s", "3s"),
    ],
)
def test_parse_duration_equivalent_forms(left, right):
    assert parse_duration(left) == parse_duration(right)


def test_parse_duration_values():
    assert parse_duration("10s") == 10
    assert parse_duration("500ms") == 0.5
    assert parse_duration("0") == 0
    assert parse_duration("-2s") == -parse_duration("2s")


@pytest.mark.parametrize("text", ["", "10", "10x", ".s", "s", "1..2s", "-", "3s4"])
def test_parse_duration_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_load_config_reads_file_and_envs(tmp_path):
    path = tmp_path / "local.yaml"
    path.write_text(YAML_TEXT, encoding="utf-8")
    envs = _envs()

    config = load_config(envs, path)

    assert config.read_timeout == parse_duration("5s")
    assert config.write_timeout == parse_duration("90s")
    assert config.idle_timeout == parse_duration("2s")
    assert config.service_name == "simplesearch"
    assert config.elasticsearch.transport.tls.insecure is True
    assert config.elasticsearch.transport.tls_timeout == parse_duration("10s")
    assert config.elasticsearch.transport.idle_timeout == parse_duration("500ms")
    assert config.address == envs["address"]
    assert config.elasticsearch.address == envs["es_address"]
    assert config.elasticsearch.username == envs["es_username"]
    assert config.elasticsearch.password == envs["es_password"]


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "local.yaml"
    path.write_text("", encoding="utf-8")
    config = load_config({"env": "local"}, path)
    assert config == Config(elasticsearch=ElasticSearchSettings())


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_envs(), tmp_path / "absent.yaml")


@pytest.mark.parametrize("env", ["production", "development"])
def test_named_environments_skip_file(tmp_path, env):
    envs = dict(_envs(), env=env)
    config = load_config(envs, tmp_path / "absent.yaml")
    assert config.read_timeout == 0
    assert config.service_name == ""
    assert config.elasticsearch.address == envs["es_address"]


@pytest.mark.parametrize(
    "text",
    [
        "read_timeout: soon\n",
        "read_timeout: true\n",
        "- a\n- b\n",
        "elasticsearch: 3\n",
        "elasticsearch:\n  transport:\n    tls:\n      tls_insecure: maybe\n",
        "read_timeout: [\n",
    ],
)
def test_malformed_file_raises(tmp_path, text):
    path = tmp_path / "local.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(_envs(), path)


def test_unsupported_extension_raises(tmp_path):
    path = tmp_path / "local.ini"
    path.write_text("read_timeout: 5s\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(_envs(), path)