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
Image reference parsing and handling.
Parses image names like 'nginx', 'repo/app:v1' or 'localhost:5000/team/app@sha256:...'.
"""

from typing import Optional
from dataclasses import dataclass, replace

from ..exceptions import InvalidImageReferenceError


@dataclass(frozen=True)
class ImageReference:
    """
    Parsed container image reference.

    Unlike a registry client, the registry is kept only when it is part of
    the name itself, so that callers can tell an embedded registry apart from
    one that was chosen later.

    Examples:
        - nginx -> repository 'nginx', no registry, no user
        - repo/app:v1 -> user 'repo', repository 'repo/app', tag 'v1'
        - gcr.io/project/image:2 -> registry 'gcr.io', user 'project'
        - localhost:5000/app -> registry 'localhost:5000'
    """

    repository: str
    registry: Optional[str] = None
    tag: Optional[str] = None
    digest: Optional[str] = None

    DEFAULT_TAG = "latest"

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Parse an image reference string.

        Args:
            reference: Image reference string (e.g., 'nginx:latest', 'repo/app:v1')

        Returns:
            Parsed ImageReference object.

        Raises:
            InvalidImageReferenceError: If the reference is empty or malformed.
        """
        if not reference or not reference.strip():
            raise InvalidImageReferenceError("Empty image reference")
        if reference != reference.strip() or any(c.isspace() for c in reference):
            raise InvalidImageReferenceError(
                f"Image reference '{reference}' must not contain whitespace"
            )

        name = reference
        digest = None
        if "@" in name:
            name, digest = name.rsplit("@", 1)
            if not digest:
                raise InvalidImageReferenceError(
                    f"Empty digest in image reference '{reference}'"
                )

        parts = name.split("/")

        # A colon in the last component is a tag, anywhere else it is a port
        tag = None
        if ":" in parts[-1]:
            parts[-1], tag = parts[-1].rsplit(":", 1)
            if not tag:
                raise InvalidImageReferenceError(
                    f"Empty tag in image reference '{reference}'"
                )

        registry = None
        if len(parts) > 1 and cls._looks_like_registry(parts[0]):
            registry = parts[0]
            parts = parts[1:]

        if not all(parts):
            raise InvalidImageReferenceError(
                f"Invalid repository path in image reference '{reference}'"
            )

        return cls(
            repository="/".join(parts), registry=registry, tag=tag, digest=digest
        )

    @staticmethod
    def _looks_like_registry(component: str) -> bool:
        return "." in component or ":" in component or component == "localhost"

    @property
    def has_registry(self) -> bool:
        """Whether the registry host was part of the parsed name."""
        return self.registry is not None

    @property
    def user(self) -> Optional[str]:
        """User or namespace part of the repository, if any."""
        if "/" not in self.repository:
            return None
        return self.repository.split("/", 1)[0]

    @property
    def name_and_tag(self) -> str:
        """Repository with tag and digest, never with a registry."""
        name = self.repository
        if self.tag:
            name = f"{name}:{self.tag}"
        elif not self.digest:
            name = f"{name}:{self.DEFAULT_TAG}"
        if self.digest:
            name = f"{name}@{self.digest}"
        return name

    @property
    def full_name(self) -> str:
        """Full name including the embedded registry, if there is one."""
        return self.full_name_with(None)

    def full_name_with(self, registry: Optional[str]) -> str:
        """
        Full name prefixed with a registry.

        The embedded registry always wins; `registry` is only used for
        references which do not carry one.
        """
        host = self.registry or registry
        if host:
            return f"{host}/{self.name_and_tag}"
        return self.name_and_tag

    def with_tag(self, tag: str) -> "ImageReference":
        """Return a copy of this reference pointing at another tag."""
        return replace(self, tag=tag, digest=None)

    def __str__(self) -> str:
        return self.full_name

    def __repr__(self) -> str:
        return f"ImageReference({self.full_name})"
