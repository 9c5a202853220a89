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
Session-scoped pull cache.
Remembers which image references were already pulled so they are not pulled twice.
"""

import os
import json
import logging
import threading
from typing import Dict, Optional, Set
from pathlib import Path

logger = logging.getLogger(__name__)


class MemoryPullCacheBackend:
    """Keeps pulled references in a set for the lifetime of the process."""

    def __init__(self):
        self._pulled: Set[str] = set()

    def contains(self, key: str) -> bool:
        return key in self._pulled

    def add(self, key: str) -> None:
        self._pulled.add(key)


class JsonFilePullCacheBackend:
    """
    Persists pulled references in a JSON file, so that several runs sharing
    the file behave like one session.
    """

    def __init__(self, path: str):
        """
        Initialize the backend.

        Args:
            path: Location of the JSON file. Parent directories are created on first write.
        """
        self.path = Path(path)
        self._pulled = self._load()

    def _load(self) -> Set[str]:
        """Load the pulled references from disk."""
        if not self.path.exists():
            return set()
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            return {str(key) for key in data.get("pulled", [])}
        except (json.JSONDecodeError, OSError, AttributeError, TypeError) as e:
            logger.warning("Ignoring unreadable pull cache %s: %s", self.path, e)
            return set()

    def _save(self) -> None:
        """Save the pulled references to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, 'w') as f:
            json.dump({"pulled": sorted(self._pulled)}, f, indent=2)
        os.replace(tmp_path, self.path)

    def contains(self, key: str) -> bool:
        return key in self._pulled

    def add(self, key: str) -> None:
        if key in self._pulled:
            return
        self._pulled.add(key)
        self._save()


class ImagePullCache:
    """
    Tracks the image references pulled during this session.

    Keys are the reference strings exactly as the caller passed them; two
    spellings of the same image are two entries. Entries are never removed,
    so a reference marked once counts as pulled even if the registry image
    changes later. Use a new cache for fresh pulls.
    """

    def __init__(self, backend=None):
        """
        :param backend: Object with `contains(key)` and `add(key)`. Defaults to an in-memory set.
        """
        self.backend = backend if backend is not None else MemoryPullCacheBackend()
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def has_already_pulled(self, image: str) -> bool:
        with self._lock:
            return self.backend.contains(image)

    def mark_pulled(self, image: str) -> bool:
        """
        Mark `image` as pulled.

        :return: True if this call added the entry, False if it was already there.
        """
        with self._lock:
            if self.backend.contains(image):
                return False
            self.backend.add(image)
            return True

    def lock_for(self, image: str) -> threading.Lock:
        """
        Return the lock serializing pulls of `image`.

        Holding it around check, pull and mark means concurrent callers for
        the same reference perform at most one pull.
        """
        with self._lock:
            lock = self._key_locks.get(image)
            if lock is None:
                lock = self._key_locks[image] = threading.Lock()
            return lock


def create_pull_cache(path: Optional[str] = None) -> ImagePullCache:
    """Create a pull cache, persisted to `path` if one is given."""
    if path:
        return ImagePullCache(JsonFilePullCacheBackend(path))
    return ImagePullCache()
