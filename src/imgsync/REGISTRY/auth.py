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
Registry credentials and the context they are looked up in.
"""

import json
import base64
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
from dataclasses import dataclass

from ..MODELS.image_configuration import RegistryCredential, SyncConfig


class RegistryAuthKind(str, Enum):
    PUSH = "push"
    PULL = "pull"


@dataclass
class RegistryAuth:
    """Authentication credentials for a registry."""

    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    server_address: Optional[str] = None
    identity_token: Optional[str] = None

    def to_header_value(self) -> str:
        """
        Encode the credentials as an X-Registry-Auth header value
        (base64url encoded JSON).
        """
        payload: Dict[str, Any] = {}
        if self.identity_token:
            payload["identitytoken"] = self.identity_token
        else:
            if self.username is not None:
                payload["username"] = self.username
            if self.password is not None:
                payload["password"] = self.password
            if self.email is not None:
                payload["email"] = self.email
        if self.server_address:
            payload["serveraddress"] = self.server_address
        encoded = json.dumps(payload, sort_keys=True).encode()
        return base64.urlsafe_b64encode(encoded).decode()

    @classmethod
    def from_header_value(cls, value: str) -> "RegistryAuth":
        """Decode a header value produced by `to_header_value`."""
        padded = value + "=" * (-len(value) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
        return cls(
            username=payload.get("username"),
            password=payload.get("password"),
            email=payload.get("email"),
            server_address=payload.get("serveraddress"),
            identity_token=payload.get("identitytoken"),
        )

    @property
    def is_anonymous(self) -> bool:
        return not (self.username or self.identity_token)


class RegistryContext(Protocol):
    """Supplies default registries and credentials per operation kind."""

    def get_registry(self, kind: RegistryAuthKind) -> Optional[str]:
        ...

    def get_auth_config(self,
                        kind: RegistryAuthKind,
                        user: Optional[str],
                        registry: Optional[str]) -> RegistryAuth:
        ...


class ConfiguredRegistryContext:
    """
    Registry context backed by a SyncConfig.

    Credentials are matched on registry; an entry restricted to a user wins
    over a general entry for the same registry. Without a match the request
    is anonymous.
    """

    def __init__(self, config: SyncConfig):
        self.config = config

    def get_registry(self, kind: RegistryAuthKind) -> Optional[str]:
        if kind == RegistryAuthKind.PUSH:
            return self.config.registries.push
        return self.config.registries.pull

    def get_auth_config(self,
                        kind: RegistryAuthKind,
                        user: Optional[str],
                        registry: Optional[str]) -> RegistryAuth:
        credential = self._find_credential(user, registry)
        if credential is None:
            return RegistryAuth(server_address=registry)
        return RegistryAuth(
            username=credential.username,
            password=credential.password,
            email=credential.email,
            server_address=credential.registry,
            identity_token=credential.identity_token,
        )

    def _find_credential(self,
                         user: Optional[str],
                         registry: Optional[str]) -> Optional[RegistryCredential]:
        if not registry:
            return None
        candidates: List[RegistryCredential] = [
            c for c in self.config.auth if c.registry == registry
        ]
        if user:
            for credential in candidates:
                if credential.user == user:
                    return credential
        for credential in candidates:
            if credential.user is None:
                return credential
        return None
