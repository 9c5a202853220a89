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
Exceptions raised by imgsync.
"""
from typing import List, Optional


class ImgSyncError(Exception):
    """Base class for all errors raised by imgsync."""


class InvalidImageReferenceError(ImgSyncError, ValueError):
    """An image reference string could not be parsed."""


class ConfigurationError(ImgSyncError):
    """The sync configuration file is missing or invalid."""


class PolicyViolationError(ImgSyncError):
    """
    No local copy of an image exists and the pull policy forbids pulling it.

    The user can fix this by choosing another pull policy or by pulling the
    image manually.
    """

    def __init__(self, image: str, policy: str) -> None:
        self.image = image
        self.policy = policy
        super().__init__(
            f"No image '{image}' found and pull policy '{policy}' is set. "
            "Please choose another pull policy or pull the image yourself"
        )


class DockerCommandError(ImgSyncError):
    """An invocation of the docker command line failed."""

    def __init__(
        self, command: List[str], returncode: int, stderr: Optional[str] = None
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"'{' '.join(command)}' exited with status {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
