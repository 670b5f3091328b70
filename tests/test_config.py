import json

import pytest

from hooklistener.core.config import ListenerConfig, Settings, load_listener_config
from hooklistener.core.exceptions import ConfigError
from hooklistener.schemas.task import FailurePolicy
from hooklistener.schemas.webhook import WebhookProvider


def make_settings(tmp_path, **overrides):
    return Settings(CONFIG_PATHS=[str(tmp_path / "missing"), str(tmp_path)], **overrides)


def write_config(tmp_path, content):
    (tmp_path / "WebhookListener.conf").write_text(
        content if isinstance(content, str) else json.dumps(content)
    )


def test_loads_first_readable_config_file(tmp_path):
    write_config(
        tmp_path,
        {
            "port": 4000,
            "keep": True,
            "tasks": {"*": "echo %r", "myrepo": ["cd %r", "make"]},
            "gitlab": {"secretToken": "abc"},
        },
    )

    config = load_listener_config(make_settings(tmp_path))

    assert config.port == 4000
    assert config.keep is True
    assert config.cmdshell == "/bin/sh"
    assert config.tasks["myrepo"] == ["cd %r", "make"]
    assert config.provider_config(WebhookProvider.GITLAB).secret_token == "abc"
    assert config.provider_config(WebhookProvider.GITHUB).secret_token is None


def test_missing_config_file_yields_defaults(tmp_path):
    config = load_listener_config(make_settings(tmp_path, CMDSHELL="/bin/bash", KEEP=True))

    assert config.tasks == {}
    assert config.cmdshell == "/bin/bash"
    assert config.keep is True
    assert config.failure_policy == FailurePolicy.CONTINUE


def test_unknown_keys_are_rejected(tmp_path):
    write_config(tmp_path, {"tasks": {}, "unexpected": 1})

    with pytest.raises(ConfigError):
        load_listener_config(make_settings(tmp_path))


def test_invalid_json_is_rejected(tmp_path):
    write_config(tmp_path, "{not json")

    with pytest.raises(ConfigError):
        load_listener_config(make_settings(tmp_path))


def test_non_object_config_is_rejected(tmp_path):
    write_config(tmp_path, ["echo"])

    with pytest.raises(ConfigError):
        load_listener_config(make_settings(tmp_path))


def test_provider_config_accepts_field_name():
    config = ListenerConfig.model_validate({"github": {"secret_token": "s3cret"}})
    assert config.provider_config(WebhookProvider.GITHUB).secret_token == "s3cret"
