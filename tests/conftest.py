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
Shared fixtures: a recording image runtime and a static registry context.
"""
import pytest

from imgsync.REGISTRY.auth import RegistryAuth, RegistryAuthKind


class FakeDockerAccess:
    """Records every runtime call instead of talking to docker."""

    def __init__(self, local_images=None):
        self.local_images = set(local_images or [])
        self.calls = []
        self.fail_push = set()

    def has_image(self, image):
        self.calls.append(("has_image", image))
        return image in self.local_images

    def pull_image(self, image, auth_header, registry):
        self.calls.append(("pull_image", image, auth_header, registry))
        self.local_images.add(image)

    def push_image(self, image, auth_header, registry, retries):
        self.calls.append(("push_image", image, auth_header, registry, retries))
        if image in self.fail_push:
            raise RuntimeError(f"push of {image} failed")

    def tag_image(self, source, target, force):
        self.calls.append(("tag_image", source, target, force))
        self.local_images.add(target)

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]


class FakeRegistryContext:
    """Registry context with fixed defaults, recording auth lookups."""

    def __init__(self, push_registry=None, pull_registry=None):
        self.registries = {
            RegistryAuthKind.PUSH: push_registry,
            RegistryAuthKind.PULL: pull_registry,
        }
        self.auth_requests = []

    def get_registry(self, kind):
        return self.registries[kind]

    def get_auth_config(self, kind, user, registry):
        self.auth_requests.append((kind, user, registry))
        return RegistryAuth(username=f"{kind.value}-user", password="secret",
                            server_address=registry)


@pytest.fixture
def docker():
    return FakeDockerAccess()


@pytest.fixture
def context():
    return FakeRegistryContext()


@pytest.fixture(autouse=True)
def no_registry_env(monkeypatch):
    monkeypatch.delenv("DOCKER_REGISTRY", raising=False)
