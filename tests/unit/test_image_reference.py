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
Unit tests for image reference parsing.
"""
import pytest
from imgsync.REGISTRY.image_reference import ImageReference
from imgsync.exceptions import InvalidImageReferenceError


class TestImageReference:
    """Tests for ImageReference parsing."""

    def test_parse_simple_name(self):
        ref = ImageReference.parse("nginx")
        assert ref.registry is None
        assert ref.repository == "nginx"
        assert ref.user is None
        assert ref.tag is None
        assert ref.full_name == "nginx:latest"

    def test_parse_with_tag(self):
        ref = ImageReference.parse("nginx:1.21")
        assert ref.repository == "nginx"
        assert ref.tag == "1.21"

    def test_parse_user_image(self):
        """Test parsing user/image format."""
        ref = ImageReference.parse("myuser/myimage:v1")
        assert ref.registry is None
        assert ref.user == "myuser"
        assert ref.repository == "myuser/myimage"
        assert ref.tag == "v1"
        assert not ref.has_registry

    def test_parse_full_reference(self):
        ref = ImageReference.parse("gcr.io/project/image:latest")
        assert ref.registry == "gcr.io"
        assert ref.user == "project"
        assert ref.repository == "project/image"
        assert ref.has_registry

    def test_parse_with_digest(self):
        ref = ImageReference.parse("nginx@sha256:abc123")
        assert ref.repository == "nginx"
        assert ref.digest == "sha256:abc123"
        assert ref.tag is None
        assert ref.full_name == "nginx@sha256:abc123"

    def test_parse_registry_with_port(self):
        ref = ImageReference.parse("localhost:5000/myimage:v1")
        assert ref.registry == "localhost:5000"
        assert ref.repository == "myimage"
        assert ref.tag == "v1"

    def test_parse_localhost_registry(self):
        ref = ImageReference.parse("localhost/team/app")
        assert ref.registry == "localhost"
        assert ref.user == "team"

    def test_first_component_without_dot_is_user(self):
        ref = ImageReference.parse("team/app")
        assert ref.registry is None
        assert ref.user == "team"

    def test_full_name_with_registry(self):
        ref = ImageReference.parse("repo/app:v1")
        assert ref.full_name_with("reg.example.com") == "reg.example.com/repo/app:v1"
        assert ref.full_name_with(None) == "repo/app:v1"

    def test_embedded_registry_wins_in_full_name(self):
        ref = ImageReference.parse("quay.io/repo/app:v1")
        assert ref.full_name_with("reg.example.com") == "quay.io/repo/app:v1"

    def test_with_tag(self):
        ref = ImageReference.parse("quay.io/repo/app:v1")
        assert ref.with_tag("v2").full_name == "quay.io/repo/app:v2"
        assert ref.tag == "v1"

    def test_reference_is_immutable(self):
        ref = ImageReference.parse("nginx")
        with pytest.raises(AttributeError):
            ref.tag = "1.0"

    def test_parsing_is_deterministic(self):
        assert ImageReference.parse("a.io/b/c:d") == ImageReference.parse("a.io/b/c:d")

    @pytest.mark.parametrize("value", ["", "   ", "repo//app", "app:", "app@", "my app"])
    def test_invalid_reference_raises(self, value):
        with pytest.raises(InvalidImageReferenceError):
            ImageReference.parse(value)

    def test_invalid_reference_is_value_error(self):
        with pytest.raises(ValueError):
            ImageReference.parse("")

    def test_str_representation(self):
        ref = ImageReference.parse("nginx:1.21")
        assert str(ref) == "nginx:1.21"
