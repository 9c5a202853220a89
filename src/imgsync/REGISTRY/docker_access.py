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
Access to the local image runtime.

The sync service only needs four operations, described by DockerAccess.
DockerCliAccess implements them on top of the docker command line.
"""

import logging
import subprocess
from typing import List, Optional, Protocol

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .auth import RegistryAuth
from .image_reference import ImageReference
from ..exceptions import DockerCommandError

logger = logging.getLogger(__name__)


class DockerAccess(Protocol):
    """Operations the sync service needs from the image runtime."""

    def has_image(self, image: str) -> bool:
        ...

    def pull_image(self, image: str, auth_header: str, registry: Optional[str]) -> None:
        ...

    def push_image(self,
                   image: str,
                   auth_header: str,
                   registry: Optional[str],
                   retries: int) -> None:
        ...

    def tag_image(self, source: str, target: str, force: bool) -> None:
        ...


class DockerCliAccess:
    """
    DockerAccess implementation which shells out to the docker CLI.

    Registries passed separately from the image name are prepended to names
    which do not carry one. Push retries are executed here, with
    exponential backoff between attempts.
    """

    def __init__(self,
                 executable: str = "docker",
                 retry_wait: float = 1.0,
                 timeout: Optional[float] = None):
        """
        :param executable: docker binary to invoke.
        :param retry_wait: Base wait in seconds between push attempts.
        :param timeout: Timeout in seconds for every docker invocation.
        """
        self.executable = executable
        self.retry_wait = retry_wait
        self.timeout = timeout

    def _run(self, args: List[str], input_text: Optional[str] = None) -> subprocess.CompletedProcess:
        command = [self.executable] + args
        logger.debug("Running %s", " ".join(command))
        result = subprocess.run(
            command,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise DockerCommandError(command, result.returncode, result.stderr)
        return result

    def _login(self, auth_header: str, registry: Optional[str]) -> None:
        auth = RegistryAuth.from_header_value(auth_header)
        if auth.is_anonymous:
            return
        if not auth.username or auth.password is None:
            logger.debug("Identity tokens are not supported by the docker CLI, skipping login")
            return
        args = ["login", "--username", auth.username, "--password-stdin"]
        if registry:
            args.append(registry)
        self._run(args, input_text=auth.password)

    def has_image(self, image: str) -> bool:
        try:
            self._run(["image", "inspect", image])
        except DockerCommandError:
            return False
        return True

    def pull_image(self, image: str, auth_header: str, registry: Optional[str]) -> None:
        self._login(auth_header, registry)
        self._run(["pull", ImageReference.parse(image).full_name_with(registry)])

    def push_image(self,
                   image: str,
                   auth_header: str,
                   registry: Optional[str],
                   retries: int) -> None:
        self._login(auth_header, registry)
        ref = ImageReference.parse(image)
        target = ref.full_name_with(registry)
        # Names without a registry are pushed through a registry tag, which is
        # removed again unless it existed before
        temporary_tag = False
        if target != ref.full_name:
            temporary_tag = not self.has_image(target)
            self._run(["tag", image, target])
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(max(retries, 0) + 1),
                wait=wait_exponential(multiplier=self.retry_wait, max=30),
                retry=retry_if_exception_type(DockerCommandError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "Retrying push of %s (attempt %d of %d)",
                            target, attempt.retry_state.attempt_number, retries + 1,
                        )
                    self._run(["push", target])
        finally:
            if temporary_tag:
                self._remove_tag(target)

    def _remove_tag(self, image: str) -> None:
        try:
            self._run(["image", "rm", image])
        except DockerCommandError as e:
            logger.warning("Could not remove temporary tag %s: %s", image, e)

    def tag_image(self, source: str, target: str, force: bool) -> None:
        # docker tag always moves an existing target, there is no force switch
        self._run(["tag", source, target])
