"""Expansion of ``$rel`` relation pointers in API responses.

A response object may carry ``"$rel": "bizberry/widgets/{.parent_id}"``. The
first path segment names the backend, the rest is an endpoint template whose
placeholders are dot-paths into the object itself (``{.parent_id}``) or, with
more leading dots, into its ancestors (``{..id}`` is the parent's id). The
referenced resource is fetched and its fields merged into the object.

Fetches are deduplicated per endpoint and query: the pending future is stored
before anything is awaited, so every concurrent expansion of the same
relation joins the first request instead of issuing its own.
"""
import asyncio
import copy
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, quote

from bizberry_sdk.services.errors import BizberryError
from bizberry_sdk.services.params import normalize_query

if TYPE_CHECKING:
    from bizberry_sdk.services.api import APIClient

logger = logging.getLogger(__name__)

REL_KEY = "$rel"
FETCHED_AT_KEY = "$fetched_at"
UPDATED_AT_KEY = "$updated_at"
DEFAULT_MAX_DEPTH = 19

# {.field.sub} - one dot per level, the first being the object itself
PLACEHOLDER_PATTERN = re.compile(r"\{(\.+)([^{}]*)\}")


class UnresolvedTemplateError(ValueError):
    """A placeholder refers to a value that is not there."""
    pass


@dataclass
class CacheEntry:
    """Pending or settled fetch of one relation."""
    pending_result: "asyncio.Future[Any]"
    created_at: datetime
    updated_at: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def lookup_path(obj: Any, path: str) -> Any:
    """Follow a dot-path through dicts and lists. Empty path returns ``obj``."""
    current = obj
    for part in filter(None, path.split(".")):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
        if current is None:
            return None
    return current


def resolve_template(template: str, chain: Sequence[dict]) -> str:
    """Substitute placeholders using the object chain (root first, current object last).

    Raises:
        UnresolvedTemplateError: If a placeholder cannot be resolved
    """
    def replace(match: "re.Match[str]") -> str:
        level = len(chain) - len(match.group(1))
        if level < 0:
            raise UnresolvedTemplateError(f"{match.group(0)} climbs above the response root")
        value = lookup_path(chain[level], match.group(2))
        if value is None or isinstance(value, (dict, list)):
            raise UnresolvedTemplateError(f"{match.group(0)} has no scalar value")
        return quote(str(value), safe="")

    return PLACEHOLDER_PATTERN.sub(replace, template)


def split_relation(resolved: str) -> Tuple[str, str]:
    """Split a resolved pointer into (endpoint, query).

    ``bizberry/widgets/7?x=1`` -> ``("/widgets/7", "x=1")``. A pointer that
    already starts with ``/`` is used as the endpoint unchanged.
    """
    path, _, query = resolved.partition("?")
    if not path.startswith("/"):
        _, _, rest = path.partition("/")
        path = "/" + rest
    return path, query


def cache_key(endpoint: str, query: str) -> str:
    normalized = normalize_query(query)
    return f"{endpoint}?{normalized}" if normalized else endpoint


def _query_params(query: str) -> Dict[str, List[str]]:
    params: Dict[str, List[str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, []).append(value)
    return params


class RelationCache:
    """Resolves ``$rel`` pointers through the API client, one fetch per relation."""

    def __init__(self, api: "APIClient", max_depth: int = DEFAULT_MAX_DEPTH):
        self.api = api
        self.max_depth = max_depth
        self.cache: Dict[str, CacheEntry] = {}

    def reset(self) -> None:
        """Forget all entries. In-flight fetches still complete for their waiters."""
        self.cache = {}

    async def enrich(self, data: Any, max_depth: Optional[int] = None) -> Any:
        """Expand every relation in ``data`` in place and return it.

        Failed relations stay unexpanded; nothing here fails the response.
        """
        limit = self.max_depth if max_depth is None else max_depth
        await self._gather([self._walk(data, (), 0, limit)])
        return data

    async def _walk(self, node: Any, parents: Tuple[dict, ...], depth: int, limit: int) -> None:
        if depth >= limit:
            logger.debug(f"Relation depth limit {limit} reached, not expanding further")
            return

        if isinstance(node, list):
            await self._gather([
                self._walk(item, parents, depth + 1, limit)
                for item in node
                if isinstance(item, (dict, list))
            ])
            return

        if not isinstance(node, dict):
            return

        chain = parents + (node,)
        # The fetched data may bring its own $rel; each expansion costs a level
        while isinstance(node.get(REL_KEY), str) and depth < limit:
            if not await self._expand(node, chain):
                break
            depth += 1

        await self._gather([
            self._walk(child, chain, depth + 1, limit)
            for child in list(node.values())
            if isinstance(child, (dict, list))
        ])

    async def _gather(self, coros: List[Any]) -> None:
        if not coros:
            return
        results = await asyncio.gather(*coros, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Relation expansion branch failed: {result}")

    async def _expand(self, node: dict, chain: Tuple[dict, ...]) -> bool:
        template = node[REL_KEY]
        try:
            resolved = resolve_template(template, chain)
        except UnresolvedTemplateError as e:
            logger.debug(f"Cannot resolve relation {template}: {e}")
            return False

        endpoint, query = split_relation(resolved)
        key = cache_key(endpoint, query)
        entry = self._entry_for(key, endpoint, query)

        try:
            result = await asyncio.shield(entry.pending_result)
        except BizberryError as e:
            logger.warning(f"Could not fetch relation {key}: {e}")
            return False

        if not isinstance(result, dict):
            logger.debug(f"Relation {key} did not return an object, leaving it unexpanded")
            return False

        settled = self.cache.get(key)
        if settled is None or settled.pending_result is not entry.pending_result:
            settled = entry

        del node[REL_KEY]
        node.update(copy.deepcopy(result))
        node[FETCHED_AT_KEY] = settled.created_at.isoformat()
        node[UPDATED_AT_KEY] = (settled.updated_at or _utcnow()).isoformat()

        # Merged back; later passes fetch fresh data
        if self.cache.get(key) is settled:
            del self.cache[key]
        return True

    def _entry_for(self, key: str, endpoint: str, query: str) -> CacheEntry:
        """Return the entry for ``key``, starting the fetch if there is none.

        Must not await: the entry has to be in the cache before any other
        coroutine gets to run.
        """
        entry = self.cache.get(key)
        if entry is not None:
            logger.debug(f"Joining pending relation fetch {key}")
            return entry

        logger.debug(f"Fetching relation {key}")
        future = asyncio.ensure_future(
            self.api.get(endpoint, params=_query_params(query) or None, expand=False)
        )
        entry = CacheEntry(pending_result=future, created_at=_utcnow())
        self.cache[key] = entry
        future.add_done_callback(partial(self._settle, key, entry))
        return entry

    def _settle(self, key: str, entry: CacheEntry, future: "asyncio.Future[Any]") -> None:
        if self.cache.get(key) is not entry:
            return
        if future.cancelled() or future.exception() is not None:
            # Let the next caller retry
            del self.cache[key]
            return
        self.cache[key] = CacheEntry(
            pending_result=future,
            created_at=entry.created_at,
            updated_at=_utcnow(),
        )
