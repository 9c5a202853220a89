# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Tests for the imgsync command line.
"""
import json
import os

import pytest
from click.testing import CliRunner
from imgsync.CLI.main import cli

from conftest import FakeDockerAccess

CONFIG = """
registries:
  push: registry.example.com
pull_policy: IfNotPresent
retries: 1
images:
  - name: repo/app
    build:
      tags: [v1, v2]
  - name: repo/base
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "imgsync.yml").write_text(CONFIG)
    return tmp_path


@pytest.fixture
def invoke(monkeypatch):
    def run(docker, *args):
        monkeypatch.setattr("imgsync.CLI.main.create_docker_access", lambda: docker)
        return CliRunner().invoke(cli, list(args))
    return run


def test_push_all_configured_images(workdir, invoke):
    docker = FakeDockerAccess()
    result = invoke(docker, "push")
    assert result.exit_code == 0, result.output
    pushes = docker.calls_named("push_image")
    assert [call[1] for call in pushes] == ["repo/app", "repo/app:v1", "repo/app:v2"]
    assert {call[3] for call in pushes} == {"registry.example.com"}
    assert {call[4] for call in pushes} == {1}
    assert "Pushed repo/app:v2" in result.output


def test_push_options_override_config(workdir, invoke):
    docker = FakeDockerAccess()
    result = invoke(docker, "push", "repo/app", "--skip-tag", "--retries", "4")
    assert result.exit_code == 0, result.output
    assert docker.calls_named("push_image") == [
        ("push_image", "repo/app", docker.calls_named("push_image")[0][2], "registry.example.com", 4)
    ]


def test_push_unknown_image(workdir, invoke):
    result = invoke(FakeDockerAccess(), "push", "nope")
    assert result.exit_code == 1
    assert "nope is not configured" in result.output


def test_pull_images(workdir, invoke):
    docker = FakeDockerAccess(local_images=["repo/base"])
    result = invoke(docker, "pull")
    assert result.exit_code == 0, result.output
    assert "repo/app: pulled" in result.output
    assert "repo/base: skipped" in result.output


def test_pull_policy_never_fails(workdir, invoke):
    result = invoke(FakeDockerAccess(), "pull", "missing/app", "--policy", "never")
    assert result.exit_code == 1
    assert "missing/app" in result.output
    assert "Never" in result.output


def test_pull_uses_persisted_cache(workdir, invoke):
    cache_file = workdir / "pulled.json"
    (workdir / "imgsync.yml").write_text(f"pull_cache: {cache_file}\n")
    docker = FakeDockerAccess()
    assert invoke(docker, "pull", "app", "--policy", "Always").exit_code == 0
    assert json.loads(cache_file.read_text()) == {"pulled": ["app"]}

    second = FakeDockerAccess()
    result = invoke(second, "pull", "app", "--policy", "Always")
    assert "app: cached" in result.output
    assert second.calls == []


def test_invalid_config_is_reported(workdir, invoke):
    (workdir / "imgsync.yml").write_text("retries: -3\n")
    result = invoke(FakeDockerAccess(), "pull", "app")
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_env_file_is_loaded(workdir, invoke, monkeypatch):
    monkeypatch.delenv("IMGSYNC_TEST_REGISTRY", raising=False)
    (workdir / ".env").write_text("IMGSYNC_TEST_REGISTRY=dotenv.example.com\n")
    (workdir / "imgsync.yml").write_text(
        "registries:\n  pull: ${IMGSYNC_TEST_REGISTRY}\n")
    docker = FakeDockerAccess()
    try:
        result = invoke(docker, "pull", "app")
    finally:
        os.environ.pop("IMGSYNC_TEST_REGISTRY", None)
    assert result.exit_code == 0, result.output
    assert docker.calls_named("pull_image")[0][3] == "dotenv.example.com"


def test_cli_help():
    result = CliRunner().invoke(cli, ["pull", "--help"])
    assert result.exit_code == 0
    assert "--policy" in result.output


def test_pull_policy_alias(workdir, invoke):
    docker = FakeDockerAccess(local_images=["app"])
    result = invoke(docker, "pull", "app", "--policy", "IfAbsent")
    assert result.exit_code == 0, result.output
    assert "app: skipped" in result.output
    assert docker.calls_named("pull_image") == []
