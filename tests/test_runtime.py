from __future__ import annotations

import argparse

import pytest

from quizwise import runtime as runtime_mod
from quizwise.core.ai import ClientError


def _args(**values) -> argparse.Namespace:
    values.setdefault("config", None)
    values.setdefault("user", None)
    values.setdefault("verbose", False)
    return argparse.Namespace(**values)


def test_build_runtime_wires_workspace(tmp_path, fake_client):
    env = {"QUIZWISE_DATA_HOME": str(tmp_path / "ws"), "QUIZWISE_USER": "ada"}
    seen = {}

    def _factory(**kwargs):
        seen.update(kwargs)
        return fake_client

    runtime = runtime_mod.build_runtime(_args(), env=env, client_factory=_factory)

    assert runtime.layout.home == (tmp_path / "ws").resolve()
    assert runtime.user_id == "ada"
    assert runtime.log_path.parent == runtime.layout.path_for("logs")
    assert seen == {"api_base": None, "timeout": 120}
    assert runtime.gateway.settings.chat_model == "gpt-4o-mini"
    shell = runtime_mod.build_shell(runtime)
    assert shell.is_authenticated
    assert shell.settings.question_counts == (5, 10, 20)


def test_user_resolution_order(tmp_path):
    from quizwise.config import load_config

    config_path = tmp_path / "quizwise.toml"
    config_path.write_text('[account]\nuser_id = "from-config"\n', encoding="utf-8")
    cfg = load_config(explicit_path=config_path, env={})

    assert runtime_mod.resolve_user("flag", cfg, {"QUIZWISE_USER": "env"}) == "flag"
    assert runtime_mod.resolve_user(None, cfg, {"QUIZWISE_USER": "env"}) == "env"
    assert runtime_mod.resolve_user("  ", cfg, {}) == "from-config"


def test_missing_api_key_is_a_setup_error(tmp_path):
    def _factory(**kwargs):
        raise ClientError("OPENAI_API_KEY not found in environment.")

    with pytest.raises(runtime_mod.RuntimeSetupError, match="OPENAI_API_KEY"):
        runtime_mod.build_runtime(
            _args(),
            env={"QUIZWISE_DATA_HOME": str(tmp_path)},
            client_factory=_factory,
        )


def test_read_only_runtime_skips_the_client(tmp_path):
    runtime = runtime_mod.build_runtime(
        _args(),
        env={"QUIZWISE_DATA_HOME": str(tmp_path)},
        with_gateway=False,
    )
    assert runtime.gateway is None
    assert runtime.user_id is None


def test_bad_config_is_a_setup_error(tmp_path):
    config_path = tmp_path / "quizwise.toml"
    config_path.write_text("[quiz]\nbogus = 1\n", encoding="utf-8")
    with pytest.raises(runtime_mod.RuntimeSetupError, match="quiz.bogus"):
        runtime_mod.build_runtime(
            _args(config=config_path),
            env={"QUIZWISE_DATA_HOME": str(tmp_path)},
            with_gateway=False,
        )


def test_data_home_from_config(tmp_path):
    home = tmp_path / "elsewhere"
    config_path = tmp_path / "quizwise.toml"
    config_path.write_text(f'[paths]\ndata_home = "{home}"\n', encoding="utf-8")
    runtime = runtime_mod.build_runtime(
        _args(config=config_path), env={}, with_gateway=False
    )
    assert runtime.layout.home == home.resolve()
