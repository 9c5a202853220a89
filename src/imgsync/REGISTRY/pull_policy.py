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
Pull policy evaluation.

Decides, from the pull policy and whether an image is already present
locally, if an image must be pulled.
"""

from enum import Enum
from dataclasses import dataclass

from ..MODELS.image_configuration import PullPolicy
from ..exceptions import PolicyViolationError


class PullDecision(str, Enum):
    SKIP = "skip"
    PULL = "pull"
    FAIL = "fail"


@dataclass(frozen=True)
class PullEvaluation:
    """Outcome of evaluating a pull policy for one image."""

    decision: PullDecision
    image: str
    policy: PullPolicy
    reason: str

    @property
    def requires_pull(self) -> bool:
        return self.decision is PullDecision.PULL

    def raise_for_failure(self) -> None:
        """Raise PolicyViolationError if the decision is FAIL."""
        if self.decision is PullDecision.FAIL:
            raise PolicyViolationError(self.image, str(self.policy))


def evaluate_pull_policy(
    has_image: bool, policy: PullPolicy, image: str
) -> PullEvaluation:
    """
    Decide whether `image` must be pulled.

    | has_image | policy       | decision |
    |-----------|--------------|----------|
    | False     | Never        | FAIL     |
    | True      | Never        | SKIP     |
    | False     | IfNotPresent | PULL     |
    | False     | Always       | PULL     |
    | True      | IfNotPresent | SKIP     |
    | True      | Always       | PULL     |
    """
    if policy == PullPolicy.NEVER:
        if not has_image:
            return PullEvaluation(
                PullDecision.FAIL, image, policy,
                "no local image and pull disallowed",
            )
        return PullEvaluation(
            PullDecision.SKIP, image, policy, "image present locally"
        )

    if not has_image:
        return PullEvaluation(
            PullDecision.PULL, image, policy, "image not present locally"
        )

    if policy == PullPolicy.ALWAYS:
        return PullEvaluation(
            PullDecision.PULL, image, policy, "pull policy is Always"
        )
    return PullEvaluation(
        PullDecision.SKIP, image, policy, "image present locally"
    )
