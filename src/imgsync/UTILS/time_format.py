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
Human readable durations for log messages.
"""
import time
from typing import List, Optional

_UNITS = [
    ("hour", 3600000),
    ("minute", 60000),
    ("second", 1000),
]


def format_duration(millis: int) -> str:
    """
    Formats a duration in milliseconds, e.g. '2 minutes, 5 seconds' or '340 milliseconds'.
    """
    millis = max(int(millis), 0)
    if millis < 1000:
        return f"{millis} millisecond{'' if millis == 1 else 's'}"

    parts: List[str] = []
    for name, size in _UNITS:
        count, millis = divmod(millis, size)
        if count:
            parts.append(f"{count} {name}{'' if count == 1 else 's'}")
    return ", ".join(parts)


def format_duration_till(start: float, now: Optional[float] = None) -> str:
    """
    Formats the time elapsed since `start`, a time.monotonic() reading.
    """
    end = time.monotonic() if now is None else now
    return format_duration(int(round((end - start) * 1000)))
