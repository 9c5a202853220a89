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
Registry synchronization service.
Pushes and pulls images, deciding on registries, credentials and whether a pull is needed.
"""

import time
import logging
from enum import Enum
from typing import List, Optional

from .auth import RegistryAuthKind, RegistryContext
from .docker_access import DockerAccess
from .image_reference import ImageReference
from .pull_cache import ImagePullCache
from .pull_policy import PullDecision, evaluate_pull_policy
from .registry_resolver import RegistryResolver
from ..MODELS.image_configuration import ImageConfiguration, PullPolicy
from ..UTILS.time_format import format_duration_till

logger = logging.getLogger(__name__)


class PullOutcome(str, Enum):
    CACHED = "cached"
    SKIPPED = "skipped"
    PULLED = "pulled"


class RegistrySyncService:
    """
    Pushes images to and pulls images from registries.

    The service owns one ImagePullCache for its whole lifetime, so every
    reference is pulled at most once per service instance.
    """

    def __init__(self,
                 docker: DockerAccess,
                 pull_cache: Optional[ImagePullCache] = None,
                 resolver: Optional[RegistryResolver] = None):
        """
        :param docker: Access to the image runtime.
        :param pull_cache: Cache of pulled references. Defaults to an in-memory cache.
        :param resolver: Registry resolver. Defaults to one reading DOCKER_REGISTRY.
        """
        self.docker = docker
        self.pull_cache = pull_cache if pull_cache is not None else ImagePullCache()
        self.resolver = resolver if resolver is not None else RegistryResolver()

    def push_image(self,
                   image_config: ImageConfiguration,
                   retries: int,
                   skip_tag: bool,
                   context: RegistryContext) -> List[str]:
        """
        Push an image and its additional tags.

        Images without a build configuration are not pushed. Every push is
        independent: a failing tag push leaves earlier pushes in place.

        :param image_config: Image to push.
        :param retries: Retry budget handed to the runtime for every single push.
        :param skip_tag: Push only the image name, not the additional tags.
        :param context: Source of default registry and credentials.
        :return: Names pushed, in order.
        """
        build_config = image_config.build_configuration
        if build_config is None:
            logger.debug("%s has no build configuration, nothing to push", image_config.name)
            return []

        name = image_config.name
        ref = ImageReference.parse(name)
        registry = self.resolver.resolve(
            ref.registry,
            image_config.registry,
            lambda: context.get_registry(RegistryAuthKind.PUSH),
        )
        auth_header = context.get_auth_config(
            RegistryAuthKind.PUSH, ref.user, registry
        ).to_header_value()

        start = time.monotonic()
        self.docker.push_image(name, auth_header, registry, retries)
        logger.info("Pushed %s in %s", name, format_duration_till(start))
        pushed = [name]

        if not skip_tag:
            for tag in build_config.tags:
                if tag is None:
                    continue
                tagged_name = ref.with_tag(tag).full_name
                start = time.monotonic()
                self.docker.push_image(tagged_name, auth_header, registry, retries)
                logger.info("Pushed %s in %s", tagged_name, format_duration_till(start))
                pushed.append(tagged_name)
        return pushed

    def pull_image(self,
                   image: str,
                   policy: PullPolicy,
                   context: RegistryContext) -> PullOutcome:
        """
        Make sure `image` is available locally, pulling it if the policy asks for it.

        :param image: Image reference, also used verbatim as pull cache key.
        :param policy: Pull policy in effect.
        :param context: Source of default registry and credentials.
        :raises PolicyViolationError: The image is missing and the policy is Never.
        """
        with self.pull_cache.lock_for(image):
            if self.pull_cache.has_already_pulled(image):
                logger.info("%s already pulled in this session", image)
                return PullOutcome.CACHED

            ref = ImageReference.parse(image)
            evaluation = evaluate_pull_policy(self.docker.has_image(image), policy, image)
            if evaluation.decision is PullDecision.FAIL:
                evaluation.raise_for_failure()
            if evaluation.decision is PullDecision.SKIP:
                logger.info("Not pulling %s: %s", image, evaluation.reason)
                return PullOutcome.SKIPPED

            registry = self.resolver.resolve(
                ref.registry,
                lambda: context.get_registry(RegistryAuthKind.PULL),
            )
            auth_header = context.get_auth_config(
                RegistryAuthKind.PULL, None, registry
            ).to_header_value()

            start = time.monotonic()
            self.docker.pull_image(ref.full_name, auth_header, registry)
            logger.info("Pulled %s in %s", ref.full_name, format_duration_till(start))
            self.pull_cache.mark_pulled(image)

            if registry is not None and not ref.has_registry:
                # Make the image reachable under the name the caller used
                self.docker.tag_image(ref.full_name_with(registry), image, False)
            return PullOutcome.PULLED
