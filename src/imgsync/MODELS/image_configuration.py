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

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PullPolicy(str, Enum):
    """
    Governs whether a local image must be refreshed from its registry.
    """
    NEVER = "Never"
    IF_NOT_PRESENT = "IfNotPresent"
    ALWAYS = "Always"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            wanted = value.strip().lower()
            if wanted == "ifabsent":
                return cls.IF_NOT_PRESENT
            for member in cls:
                if member.value.lower() == wanted or member.name.lower() == wanted:
                    return member
        return None

    def __str__(self) -> str:
        return self.value


class BuildConfiguration(BaseModel):
    """
    Build section of an image. Only images with one are pushed.
    """
    tags: List[Optional[str]] = []


class ImageConfiguration(BaseModel):
    """
    An image to synchronize with a registry.
    """
    name: str
    registry: Optional[str] = None
    build: Optional[BuildConfiguration] = None

    @property
    def build_configuration(self) -> Optional[BuildConfiguration]:
        return self.build


class RegistryDefaults(BaseModel):
    """
    Default registries per operation kind, used when an image names none.
    """
    push: Optional[str] = None
    pull: Optional[str] = None


class RegistryCredential(BaseModel):
    """
    Credentials for one registry, optionally restricted to one user/namespace.
    """
    registry: str
    user: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    identity_token: Optional[str] = None


class SyncConfig(BaseModel):
    """
    The full synchronization configuration, usually read from imgsync.yml.
    """
    images: List[ImageConfiguration] = []
    registries: RegistryDefaults = Field(default_factory=RegistryDefaults)
    auth: List[RegistryCredential] = []
    pull_policy: PullPolicy = PullPolicy.IF_NOT_PRESENT
    retries: int = Field(default=0, ge=0)
    skip_tag: bool = False
    pull_cache: Optional[str] = None

    @field_validator("pull_policy", mode="before")
    @classmethod
    def _parse_pull_policy(cls, value):
        if isinstance(value, str):
            return PullPolicy(value)
        return value

    def find_image(self, name: str) -> Optional[ImageConfiguration]:
        for image in self.images:
            if image.name == name:
                return image
        return None
