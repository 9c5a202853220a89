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
Parser for imgsync YAML configuration files.
"""
import os
import re
from typing import Dict, Optional

import yaml
from pydantic import ValidationError

from ..MODELS.image_configuration import SyncConfig
from ..exceptions import ConfigurationError

# ${VAR} or ${VAR:-default}
_VARIABLE = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}')


class SyncConfigParser:
    """
    Parser for imgsync.yml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: Variables available to ${VAR} placeholders. Defaults to os.environ.
        """
        self.context = context if context is not None else dict(os.environ)

    def parse(self, config_path: str) -> SyncConfig:
        """
        Parses a configuration file from a path.

        :param config_path: Path to the configuration file.
        :return: Parsed configuration.
        :raises ConfigurationError: If the file cannot be read or is invalid.
        """
        try:
            with open(config_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read {config_path}: {e}") from e
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> SyncConfig:
        """
        Parses a configuration from a string.

        :param content: YAML content.
        :return: Parsed configuration.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping")

        data = self._interpolate_values(data)

        # A bare list of tags under build is accepted as shorthand
        for image in data.get('images') or []:
            if isinstance(image, dict) and isinstance(image.get('build'), list):
                image['build'] = {'tags': image['build']}

        try:
            return SyncConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _interpolate_values(self, node):
        """
        Interpolates string scalars of a loaded document, leaving keys alone.
        """
        if isinstance(node, dict):
            return {key: self._interpolate_values(value) for key, value in node.items()}
        if isinstance(node, list):
            return [self._interpolate_values(item) for item in node]
        if isinstance(node, str):
            return self.interpolate(node)
        return node

    def interpolate(self, template: str) -> str:
        """
        Replaces ${VAR} and ${VAR:-default} placeholders.

        Unset variables without a default raise ConfigurationError.
        """
        def replace(match):
            name, default = match.group(1), match.group(2)
            value = self.context.get(name)
            if default is not None:
                return value if value else default
            if value is None:
                raise ConfigurationError(f"Variable {name} is not set")
            return value

        return _VARIABLE.sub(replace, template)
