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
Registry resolution.

Picks the registry host to talk to from several candidate sources, in a
fixed order of precedence, with the process environment as last resort.
"""

import os
from typing import Callable, Mapping, Optional, Union

REGISTRY_ENV_VAR = "DOCKER_REGISTRY"

Candidate = Union[Optional[str], Callable[[], Optional[str]]]


class RegistryResolver:
    """
    Resolves the effective registry host.

    Candidates are either plain values or zero-argument callables. They are
    evaluated lazily in order and the first non-empty value wins. If no
    candidate yields a value, the environment variable named by `env_var`
    is used; if that is unset too the result is None, meaning the image
    runtime's implicit default registry.
    """

    def __init__(self,
                 env_var: str = REGISTRY_ENV_VAR,
                 environ: Optional[Mapping[str, str]] = None):
        """
        :param env_var: Name of the environment variable used as fallback.
        :param environ: Environment to read the fallback from. Defaults to os.environ.
        """
        self.env_var = env_var
        self._environ = environ

    def resolve(self, *candidates: Candidate) -> Optional[str]:
        for candidate in candidates:
            value = candidate() if callable(candidate) else candidate
            if value:
                return value
        return self.from_environment()

    def from_environment(self) -> Optional[str]:
        environ = os.environ if self._environ is None else self._environ
        return environ.get(self.env_var) or None
