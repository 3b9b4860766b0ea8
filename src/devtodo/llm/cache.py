"""File cache for classification completions."""

import hashlib
import json
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class LLMCache:
    """File-based cache for LLM completions.

    Extraction re-reads the same recent messages every run; caching their
    classifications avoids paying for them again.
    """

    def __init__(self, cache_dir: Path) -> None:
        """Initialize cache.

        Args:
            cache_dir: Directory to store cache files
        """
        self.cache_dir = Path(cache_dir)
        self.completions_dir = self.cache_dir / "completions"
        self.completions_dir.mkdir(parents=True, exist_ok=True)

        # Stats
        self.hits = 0
        self.misses = 0

    def _generate_key(self, prompt: str, model: str, system_prompt: str = "") -> str:
        """Generate cache key from the full request.

        Args:
            prompt: User prompt
            model: Model name
            system_prompt: System prompt, part of the key so template edits
                invalidate old entries

        Returns:
            Cache key
        """
        hash_obj = hashlib.sha256(prompt.encode())
        hash_obj.update(model.encode())
        hash_obj.update(system_prompt.encode())
        return hash_obj.hexdigest()

    def get_completion(self, prompt: str, model: str, system_prompt: str = "") -> Optional[str]:
        """Get cached completion.

        Args:
            prompt: The prompt
            model: Model name
            system_prompt: System prompt used with the prompt

        Returns:
            Cached completion or None
        """
        key = self._generate_key(prompt, model, system_prompt)
        cache_file = self.completions_dir / f"{key}.json"

        if cache_file.exists():
            try:
                with open(cache_file, "r") as f:
                    data = json.load(f)
                self.hits += 1
                return data.get("completion")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("cache_read_failed", file=str(cache_file), error=str(e))

        self.misses += 1
        return None

    def set_completion(
        self, prompt: str, model: str, completion: str, system_prompt: str = ""
    ) -> None:
        """Cache a completion.

        Args:
            prompt: The prompt
            model: Model name
            completion: The completion to cache
            system_prompt: System prompt used with the prompt
        """
        key = self._generate_key(prompt, model, system_prompt)
        cache_file = self.completions_dir / f"{key}.json"

        try:
            with open(cache_file, "w") as f:
                json.dump(
                    {
                        "prompt": prompt[:200],  # Store preview
                        "model": model,
                        "completion": completion,
                    },
                    f,
                    indent=2,
                )
        except OSError as e:
            logger.warning("cache_write_failed", file=str(cache_file), error=str(e))

    def clear(self) -> None:
        """Clear all cache files."""
        for cache_file in self.completions_dir.glob("*.json"):
            cache_file.unlink()

        self.hits = 0
        self.misses = 0

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "cached_completions": len(list(self.completions_dir.glob("*.json"))),
        }
