"""
Listing module for decoding paginated response envelopes into pages
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterator, Mapping, Optional, Tuple, TypeVar, Union

from .errors import MalformedListingError


T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a listing

    Items keep the order the service returned them in. A missing 'after'
    cursor marks the last page going forward, whether or not it has items.
    """
    items: Tuple[T, ...] = ()
    before: Optional[str] = None
    after: Optional[str] = None
    total_size_hint: Optional[int] = None
    skipped_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.after is None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]


class ListingDecoder(Generic[T]):
    """
    Decodes the listing envelope

        {"data": {"children": [{"kind": ..., "data": {...}}, ...],
                  "before": str | null, "after": str | null}}

    Each child is handed to the factory registered for its kind. Children of
    unknown kinds are skipped and counted instead of failing the page.
    """

    def __init__(self, kinds: Mapping[str, Callable[[Dict[str, Any]], T]]):
        self.kinds = dict(kinds)
        self.skipped_total = 0

    def decode(self, raw: Union[Mapping[str, Any], str, bytes, None]) -> Page[T]:
        """
        Decode a listing body into a Page

        Args:
            raw: Parsed JSON mapping, or the JSON text itself

        Returns:
            Page of decoded items with cursors

        Raises:
            MalformedListingError: If the body does not match the listing envelope
        """
        envelope = self._load(raw)

        data = envelope.get('data') if isinstance(envelope, Mapping) else None
        if not isinstance(data, Mapping):
            raise MalformedListingError("Listing envelope has no 'data' object")

        children = data.get('children')
        if not isinstance(children, list):
            raise MalformedListingError("Listing envelope has no 'children' array")

        before = self._cursor(data, 'before')
        after = self._cursor(data, 'after')

        total = data.get('dist')
        total_size_hint = total if isinstance(total, int) and not isinstance(total, bool) else None

        items = []
        skipped = 0
        for position, child in enumerate(children):
            if not isinstance(child, Mapping):
                raise MalformedListingError(f"Child {position} is not an object")
            kind = child.get('kind')
            child_data = child.get('data')
            if not isinstance(kind, str) or not isinstance(child_data, Mapping):
                raise MalformedListingError(f"Child {position} is missing 'kind' or 'data'")

            factory = self.kinds.get(kind)
            if factory is None:
                skipped += 1
                logger.debug(f"Skipping listing child {position} of unknown kind '{kind}'")
                continue

            try:
                items.append(factory(dict(child_data)))
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedListingError(
                    f"Child {position} of kind '{kind}' could not be decoded: {e}"
                ) from e

        self.skipped_total += skipped
        return Page(
            items=tuple(items),
            before=before,
            after=after,
            total_size_hint=total_size_hint,
            skipped_count=skipped
        )

    @staticmethod
    def _load(raw: Union[Mapping[str, Any], str, bytes, None]) -> Any:
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                return json.loads(raw)
            except ValueError as e:
                raise MalformedListingError(f"Listing body is not valid JSON: {e}") from e
        return raw

    @staticmethod
    def _cursor(data: Mapping[str, Any], name: str) -> Optional[str]:
        value = data.get(name)
        if value is None:
            return None
        if not isinstance(value, str):
            raise MalformedListingError(f"Cursor '{name}' must be a string or null")
        # The service sends an empty string for "no cursor" on some endpoints
        return value or None
